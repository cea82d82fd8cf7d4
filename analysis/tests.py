import json
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from quizzes import question_bank, responses
from quizzes.exceptions import Forbidden, SchemaValidationError
from quizzes.models import Quiz

from . import services
from .models import Analysis


def individual(response_id, correct=7, total=9, percentage=77.7):
    return {
        "responseId": response_id,
        "performanceByTopic": {"correct": correct, "total": total, "percentage": percentage},
        "weakTopics": ["Cell division"],
        "strongTopics": ["Photosynthesis"],
        "individualFocusAreas": ["Review mitosis"],
    }


def model_payload(entries):
    return {
        "individualAnalysis": entries,
        "collectiveAnalysis": {
            "topicPerformanceSummary": {"correct": 99, "total": 99, "percentage": 100},
            "collectiveWeaknesses": ["Cell division"],
            "collectiveFocusAreas": ["Mitosis phases"],
        },
    }


@mock.patch("generate_quiz.llm.generate_content")
class AnalysisTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="owner", password="pass")
        self.other = User.objects.create_user(username="other", password="pass")
        self.quiz = Quiz.objects.create(owner=self.owner, slug="ana01")

    def _add_questions(self):
        self.q1 = question_bank.append(self.quiz.pk, "Q1", ["A", "B"], "A")
        self.q2 = question_bank.append(self.quiz.pk, "Q2", ["C", "D"], "D")

    def _submit(self, first, second):
        return responses.submit(self.quiz.slug, [
            {"questionId": self.q1.pk, "userSelectedOption": first},
            {"questionId": self.q2.pk, "userSelectedOption": second},
        ])

    def test_empty_analysis_without_responses(self, generate_content):
        analysis = services.generate_analysis(self.owner, self.quiz.pk)

        generate_content.assert_not_called()
        summary = analysis.payload["collectiveAnalysis"]["topicPerformanceSummary"]
        self.assertEqual(summary, {"correct": 0, "total": 0, "percentage": 0})
        self.assertEqual(analysis.payload["individualAnalysis"], [])
        self.assertEqual(services.get_analysis(self.owner, self.quiz.pk).payload, analysis.payload)

    def test_model_numbers_are_replaced_by_scores(self, generate_content):
        self._add_questions()
        perfect = self._submit("a ", "D")
        wrong = self._submit("B", "C")
        generate_content.return_value = "```json\n" + json.dumps(model_payload([
            individual(str(perfect.pk)),
            individual(wrong.pk, correct=2, total=2, percentage=100),
            individual(987654),
        ])) + "\n```"

        payload = services.generate_analysis(self.owner, self.quiz.pk).payload

        entries = {e["responseId"]: e for e in payload["individualAnalysis"]}
        self.assertEqual(set(entries), {perfect.pk, wrong.pk})
        self.assertEqual(entries[perfect.pk]["performanceByTopic"], {"correct": 2, "total": 2, "percentage": 100.0})
        self.assertEqual(entries[wrong.pk]["performanceByTopic"], {"correct": 0, "total": 2, "percentage": 0})
        self.assertEqual(entries[perfect.pk]["weakTopics"], ["Cell division"])
        self.assertEqual(
            payload["collectiveAnalysis"]["topicPerformanceSummary"],
            {"correct": 2, "total": 4, "percentage": 50.0},
        )

    def test_schema_violation_stores_nothing(self, generate_content):
        self._add_questions()
        self._submit("A", "D")
        broken = model_payload([individual(1)])
        broken["individualAnalysis"][0]["weakTopics"] = "not a list"
        del broken["collectiveAnalysis"]["collectiveFocusAreas"]
        generate_content.return_value = json.dumps(broken)

        with self.assertRaises(SchemaValidationError) as ctx:
            services.generate_analysis(self.owner, self.quiz.pk)

        fields = {v["field"] for v in ctx.exception.violations}
        self.assertIn("individualAnalysis.0.weakTopics", fields)
        self.assertIn("collectiveAnalysis.collectiveFocusAreas", fields)
        self.assertFalse(Analysis.objects.exists())

    def test_regeneration_keeps_one_row(self, generate_content):
        self._add_questions()
        response = self._submit("A", "C")
        generate_content.return_value = json.dumps(model_payload([individual(response.pk)]))

        services.generate_analysis(self.owner, self.quiz.pk)
        services.generate_analysis(self.owner, self.quiz.pk)

        self.assertEqual(Analysis.objects.filter(quiz=self.quiz).count(), 1)

    def test_delete_and_ownership(self, generate_content):
        services.generate_analysis(self.owner, self.quiz.pk)
        with self.assertRaises(Forbidden):
            services.get_analysis(self.other, self.quiz.pk)

        self.assertTrue(services.delete_analysis(self.owner, self.quiz.pk))
        self.assertFalse(services.delete_analysis(self.owner, self.quiz.pk))
        self.assertIsNone(services.get_analysis(self.owner, self.quiz.pk))

    def test_endpoint(self, generate_content):
        self.client.force_login(self.owner)
        url = reverse("quiz_analysis", args=[self.quiz.pk])

        self.assertIsNone(self.client.get(url).json()["analysis"])
        resp = self.client.post(url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["analysis"]["quizId"], self.quiz.pk)

        self._add_questions()
        self._submit("A", "D")
        generate_content.return_value = "The model refused."
        resp = self.client.post(url)
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["error"], "malformed_model_output")
