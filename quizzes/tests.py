import json
from datetime import datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from . import question_bank, responses, services
from .exceptions import Forbidden, NotFound, Unauthorized, ValidationError
from .models import Question, Quiz


User = get_user_model()


class QuizLifecycleTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="pass")
        self.other = User.objects.create_user(username="other", password="pass")
        self.quiz = services.create_quiz(self.owner, "Biology", "Cells")

    def test_create_assigns_slug_and_defaults(self):
        self.assertEqual(len(self.quiz.slug), 5)
        self.assertTrue(self.quiz.accepting_responses)
        self.assertEqual(self.quiz.generation_status, Quiz.IDLE)
        self.assertEqual(self.quiz.owner, self.owner)

    def test_create_requires_login(self):
        from django.contrib.auth.models import AnonymousUser
        with self.assertRaises(Unauthorized):
            services.create_quiz(AnonymousUser())

    def test_update_validates_slug_and_times(self):
        with self.assertRaises(ValidationError):
            services.update_quiz(self.owner, self.quiz.pk, "Biology", "", "bad slug!")

        other_quiz = services.create_quiz(self.owner, "Chemistry")
        with self.assertRaises(ValidationError):
            services.update_quiz(self.owner, self.quiz.pk, "Biology", "", other_quiz.slug)
        with self.assertRaises(ValidationError):
            services.update_quiz(self.owner, self.quiz.pk, "Chemistry", "", "bio-101")

        from django.utils import timezone
        from datetime import timedelta
        now = timezone.now()
        with self.assertRaises(ValidationError):
            services.update_quiz(self.owner, self.quiz.pk, "Biology", "", "bio-101",
                                 start_time=now, end_time=now)
        with self.assertRaises(ValidationError):
            services.update_quiz(self.owner, self.quiz.pk, "Biology", "", "bio-101",
                                 time_limit_minutes=0)

        quiz = services.update_quiz(self.owner, self.quiz.pk, "Biology", "Cells", "bio-101",
                                    start_time=now, end_time=now + timedelta(hours=1),
                                    time_limit_minutes=15)
        self.assertEqual(quiz.slug, "bio-101")
        self.assertEqual(quiz.time_limit_minutes, 15)

    def test_only_owner_can_modify(self):
        with self.assertRaises(Forbidden):
            services.toggle_status(self.other, self.quiz.pk)
        with self.assertRaises(NotFound):
            services.get_quiz(self.owner, 999999)

    def test_toggle_flips_flag(self):
        self.assertFalse(services.toggle_status(self.owner, self.quiz.pk))
        self.assertTrue(services.toggle_status(self.owner, self.quiz.pk))

    def test_delete_refused_while_responses_exist(self):
        q = question_bank.append(self.quiz.pk, "Q1", ["A", "B"], "A")
        responses.submit(self.quiz.slug, [{"questionId": q.pk, "userSelectedOption": "A"}])
        with self.assertRaises(ValidationError):
            services.delete_quiz(self.owner, self.quiz.pk)
        self.assertTrue(Quiz.objects.filter(pk=self.quiz.pk).exists())

    def test_delete_without_responses(self):
        services.delete_quiz(self.owner, self.quiz.pk)
        self.assertFalse(Quiz.objects.filter(pk=self.quiz.pk).exists())


class QuestionBankTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=self.owner, slug="abcde")

    def test_append_assigns_dense_orders(self):
        for i in range(3):
            question_bank.append(self.quiz.pk, f"Q{i}", ["Yes", "No"], "Yes")
        orders = [q.order for q in question_bank.list_questions(self.quiz.pk)]
        self.assertEqual(orders, [1, 2, 3])

    def test_append_trims_and_validates(self):
        q = question_bank.append(self.quiz.pk, "  Capital of France? ", [" Paris ", "Lyon"], "Paris ")
        self.assertEqual(q.text, "Capital of France?")
        self.assertEqual(q.select_options, ["Paris", "Lyon"])
        self.assertEqual(q.answer, "Paris")

        for options, answer in [
            (["Only"], "Only"),
            (["A", ""], "A"),
            (["Paris", "paris "], "Paris"),
            (["A", "B"], "C"),
            (["A", "B"], "a"),
        ]:
            with self.assertRaises(ValidationError):
                question_bank.append(self.quiz.pk, "Q", options, answer)
        with self.assertRaises(ValidationError):
            question_bank.append(self.quiz.pk, "   ", ["A", "B"], "A")

    def test_update_keeps_order(self):
        question_bank.append(self.quiz.pk, "Q1", ["A", "B"], "A")
        q2 = question_bank.append(self.quiz.pk, "Q2", ["A", "B"], "A")
        updated = question_bank.update(q2.pk, "Q2 edited", ["C", "D", "E"], "E")
        self.assertEqual(updated.order, 2)
        self.assertEqual(updated.select_options, ["C", "D", "E"])
        with self.assertRaises(ValidationError):
            question_bank.update(q2.pk, "Q2", ["C", "D"], "X")

    def test_delete_closes_order_gap(self):
        created = [question_bank.append(self.quiz.pk, f"Q{i}", ["A", "B"], "A") for i in range(1, 5)]
        question_bank.delete(created[1].pk)

        remaining = question_bank.list_questions(self.quiz.pk)
        self.assertEqual([q.order for q in remaining], [1, 2, 3])
        self.assertEqual([q.text for q in remaining], ["Q1", "Q3", "Q4"])

        with self.assertRaises(NotFound):
            question_bank.delete(created[1].pk)

    def test_long_answer_is_stored_in_full(self):
        long_option = "x" * 800
        q = question_bank.append(self.quiz.pk, "Long", [long_option, "short"], long_option)
        self.assertEqual(Question.objects.get(pk=q.pk).answer, long_option)

    def test_taker_listing_strips_answer(self):
        question_bank.append(self.quiz.pk, "Q1", ["A", "B"], "A")
        self.assertIn("answer", question_bank.list_for_owner(self.quiz.pk)[0])
        self.assertNotIn("answer", question_bank.list_for_taker(self.quiz.pk)[0])


class QuizApiTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="pass")

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_anonymous_gets_401(self):
        resp = self.client.get(reverse("quiz_collection"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "unauthorized")

    def test_owner_flow(self):
        self.client.force_login(self.owner)
        resp = self._post(reverse("quiz_collection"), {"name": "History"})
        self.assertEqual(resp.status_code, 200)
        quiz_id = resp.json()["quiz"]["id"]

        resp = self._post(reverse("question_collection", args=[quiz_id]),
                          {"question": "Year of moon landing?", "selectOptions": ["1969", "1971"], "answer": "1969"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["question"]["order"], 1)

        resp = self._post(reverse("question_collection", args=[quiz_id]),
                          {"question": "Bad", "selectOptions": ["x"], "answer": "x"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "validation_error")

        resp = self._post(reverse("quiz_toggle_status", args=[quiz_id]), {})
        self.assertFalse(resp.json()["newStatus"])

    def test_taker_flow(self):
        quiz = Quiz.objects.create(owner=self.owner, slug="take1", time_limit_minutes=10)
        q = question_bank.append(quiz.pk, "2 + 2?", ["3", "4"], "4")

        resp = self.client.get(reverse("public_questions", args=["take1"]))
        body = resp.json()
        self.assertTrue(body["availability"]["available"])
        self.assertNotIn("answer", body["questions"][0])
        self.assertEqual(body["remainingSeconds"], 600)

        resp = self._post(reverse("submit_response", args=["take1"]),
                          {"values": [{"questionId": q.pk, "userSelectedOption": "4"}]})
        self.assertEqual(resp.status_code, 200)
        stored = quiz.responses.get(pk=resp.json()["responseId"])
        self.assertIsNotNone(stored.session_start_time)
        self.assertEqual(stored.values[0]["question"], "2 + 2?")

        self.client.force_login(self.owner)
        listed = self.client.get(reverse("response_list", args=[quiz.pk])).json()["responses"]
        self.assertEqual(listed[0]["score"], 1)

    def test_numeric_session_start_is_epoch_millis(self):
        quiz = Quiz.objects.create(owner=self.owner, slug="epoch")
        q = question_bank.append(quiz.pk, "Q", ["A", "B"], "A")
        values = [{"questionId": q.pk, "userSelectedOption": "A"}]

        resp = self._post(reverse("submit_response", args=["epoch"]),
                          {"values": values, "sessionStartTime": 1700000000000})
        self.assertEqual(resp.status_code, 200)
        stored = quiz.responses.get(pk=resp.json()["responseId"])
        self.assertEqual(stored.session_start_time,
                         datetime(2023, 11, 14, 22, 13, 20, tzinfo=dt_timezone.utc))

        resp = self._post(reverse("submit_response", args=["epoch"]),
                          {"values": values, "sessionStartTime": "2023-11-14T22:13:20+00:00"})
        self.assertEqual(resp.status_code, 200)

        for bad in (True, 1.5e12, [1], {"ms": 1}, 10 ** 30):
            resp = self._post(reverse("submit_response", args=["epoch"]),
                              {"values": values, "sessionStartTime": bad})
            self.assertEqual(resp.status_code, 400)
        self.assertEqual(quiz.responses.count(), 2)

    def test_question_ids_must_be_integers(self):
        quiz = Quiz.objects.create(owner=self.owner, slug="ids01")
        q = question_bank.append(quiz.pk, "Q", ["A", "B"], "A")

        for bad_id in ([q.pk], q.pk + 0.9, float(q.pk), True, None, "1e3"):
            resp = self._post(reverse("submit_response", args=["ids01"]),
                              {"values": [{"questionId": bad_id, "userSelectedOption": "A"}]})
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["error"], "validation_error")
        self.assertEqual(quiz.responses.count(), 0)

        resp = self._post(reverse("submit_response", args=["ids01"]),
                          {"values": [{"questionId": str(q.pk), "userSelectedOption": "A"}]})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(quiz.responses.get().values[0]["questionId"], q.pk)

    def test_unknown_slug_is_404(self):
        resp = self.client.get(reverse("public_quiz", args=["nope"]))
        self.assertEqual(resp.status_code, 404)

    def test_results_pdf(self):
        quiz = Quiz.objects.create(owner=self.owner, slug="pdf01")
        question_bank.append(quiz.pk, "Q", ["A", "B"], "A")
        self.client.force_login(self.owner)
        resp = self.client.get(reverse("quiz_results_pdf", args=[quiz.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Content-Type"], "application/pdf")
        self.assertTrue(resp.content.startswith(b"%PDF"))
