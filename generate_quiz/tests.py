import json
import shutil
import tempfile
import threading
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import connections
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.urls import reverse
from google.api_core import exceptions as google_exceptions

from quizzes import question_bank
from quizzes.exceptions import (
    AlreadyInProgress,
    Forbidden,
    MalformedModelOutput,
    NoValidQuestions,
    ProviderError,
    RateLimited,
    UnsupportedContent,
    ValidationError,
)
from quizzes.models import Question, Quiz, TokenBucket
from sources import storage

from . import candidates, extraction, llm
from .pipeline import generate_questions


def mcq(text, answer="A", options=("A", "B", "C", "D")):
    return {"question": text, "selectOptions": list(options), "answer": answer}


class ExtractionTests(SimpleTestCase):
    def test_fenced_block_wins(self):
        raw = 'Sure! Here you go:\n```json\n[{"question": "Q"}]\n```\nThanks [not json]'
        self.assertEqual(extraction.parse_json_array(raw), [{"question": "Q"}])

    def test_bracket_span_fallback(self):
        raw = 'Questions follow [{"question": "Q"}, {"question": "R"}] end.'
        self.assertEqual(len(extraction.parse_json_array(raw)), 2)
        self.assertEqual(extraction.parse_json_object('noise {"a": 1} noise'), {"a": 1})

    def test_other_fence_languages_fall_back_to_brackets(self):
        raw = '```python\n[{"question": "Q"}]\n```'
        self.assertEqual(extraction.parse_json_array(raw), [{"question": "Q"}])
        self.assertEqual(extraction.parse_json_array('```\n[1, 2]\n```'), [1, 2])

    def test_no_literal_is_malformed(self):
        with self.assertRaises(MalformedModelOutput) as ctx:
            extraction.parse_json_array("I cannot help with that.")
        self.assertEqual(ctx.exception.excerpt, "I cannot help with that.")

    def test_broken_json_is_malformed(self):
        with self.assertRaises(MalformedModelOutput):
            extraction.parse_json_array('[{"question": "Q",]')
        with self.assertRaises(MalformedModelOutput):
            extraction.parse_json_array('```json\n{"question": "Q"}\n```')

    @override_settings(QUIZFORGE_ERROR_EXCERPT_CHARS=10)
    def test_excerpt_is_bounded(self):
        self.assertEqual(extraction.excerpt("x" * 50), "x" * 10 + "...")
        self.assertEqual(extraction.excerpt(None), "")


class CandidateTests(SimpleTestCase):
    def test_bad_candidates_are_dropped_individually(self):
        items = [
            mcq("Good one"),
            mcq("Answer missing", answer="Z"),
            mcq("Too few", options=("A",)),
            "not an object",
            mcq("  Padded  ", answer=" B ", options=(" A", "B ", "b", "C")),
        ]
        valid, rejected = candidates.validate_candidates(items)

        self.assertEqual([v[0] for v in valid], ["Good one", "Padded"])
        self.assertEqual(valid[1], ("Padded", ["A", "B", "C"], "B"))
        self.assertEqual([idx for idx, _ in rejected], [1, 2, 3])


class ProviderErrorTests(SimpleTestCase):
    def test_status_mapping(self):
        too_many = llm._to_provider_error(google_exceptions.TooManyRequests("slow down"))
        self.assertEqual(too_many.provider_status, 429)
        self.assertEqual(too_many.status, 503)

        bad = llm._to_provider_error(google_exceptions.InvalidArgument("bad file"))
        self.assertEqual(bad.provider_status, 400)
        self.assertEqual(bad.status, 400)

        down = llm._to_provider_error(google_exceptions.InternalServerError("boom"))
        self.assertEqual(down.status, 503)

        self.assertTrue(ProviderError("unknown").is_transient)

    @override_settings(GEMINI_API_KEYS=["key-1", "key-2"])
    def test_rotates_keys_on_429(self):
        model = mock.Mock()
        model.generate_content.side_effect = [
            google_exceptions.TooManyRequests("quota"),
            mock.Mock(text="[]"),
        ]
        with mock.patch.object(llm, "get_gemini_model", return_value=model) as factory:
            self.assertEqual(llm.generate_content("prompt"), "[]")
        self.assertEqual(factory.call_count, 2)

    @override_settings(GEMINI_API_KEYS=[])
    def test_missing_keys(self):
        with self.assertRaises(ProviderError) as ctx:
            llm.generate_content("prompt")
        self.assertEqual(ctx.exception.provider_status, 500)


@mock.patch("generate_quiz.llm.generate_content")
class GenerationPipelineTests(TestCase):
    URL = "https://example.com/article"

    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="owner", password="pass")
        self.other = User.objects.create_user(username="other", password="pass")
        self.quiz = Quiz.objects.create(owner=self.owner, slug="gen01")

    def _status(self):
        return Quiz.objects.get(pk=self.quiz.pk).generation_status

    def test_valid_subset_is_committed_after_existing_questions(self, generate_content):
        question_bank.append(self.quiz.pk, "Existing", ["A", "B"], "A")
        question_bank.append(self.quiz.pk, "Existing 2", ["A", "B"], "B")
        generate_content.return_value = json.dumps([
            mcq("One"),
            mcq("Bad answer", answer="E"),
            mcq("Two", answer="C"),
            mcq("", answer="A"),
            mcq("Three", answer="D"),
        ])

        result = generate_questions(self.owner, self.quiz.pk, 5, url=self.URL)

        self.assertEqual((result.count, result.requested, result.rejected), (3, 5, 2))
        orders = {q.text: q.order for q in question_bank.list_questions(self.quiz.pk)}
        self.assertEqual(orders, {"Existing": 1, "Existing 2": 2, "One": 3, "Two": 4, "Three": 5})
        self.assertEqual(self._status(), Quiz.IDLE)

    def test_extra_valid_candidates_are_truncated(self, generate_content):
        generate_content.return_value = json.dumps([mcq(f"Q{i}") for i in range(4)])
        result = generate_questions(self.owner, self.quiz.pk, 2, url=self.URL)
        self.assertEqual(result.count, 2)
        self.assertEqual(self.quiz.questions.count(), 2)

    def test_contention_is_rejected_without_side_effects(self, generate_content):
        Quiz.objects.filter(pk=self.quiz.pk).update(generation_status=Quiz.GENERATING)

        with self.assertRaises(AlreadyInProgress):
            generate_questions(self.owner, self.quiz.pk, 3, url=self.URL)

        generate_content.assert_not_called()
        self.assertFalse(TokenBucket.objects.exists())
        self.assertEqual(self.quiz.questions.count(), 0)
        self.assertEqual(self._status(), Quiz.GENERATING)

    def test_guard_released_on_provider_error(self, generate_content):
        generate_content.side_effect = ProviderError("down", provider_status=503)
        with self.assertRaises(ProviderError):
            generate_questions(self.owner, self.quiz.pk, 3, url=self.URL)
        self.assertEqual(self._status(), Quiz.IDLE)

    def test_malformed_output(self, generate_content):
        generate_content.return_value = "Here are some thoughts, but no JSON."
        with self.assertRaises(MalformedModelOutput):
            generate_questions(self.owner, self.quiz.pk, 3, url=self.URL)
        self.assertEqual(self._status(), Quiz.IDLE)
        self.assertEqual(self.quiz.questions.count(), 0)

    def test_all_invalid_or_empty(self, generate_content):
        generate_content.return_value = json.dumps([mcq("Bad", answer="Z")])
        with self.assertRaises(NoValidQuestions):
            generate_questions(self.owner, self.quiz.pk, 3, url=self.URL)

        generate_content.return_value = "[]"
        with self.assertRaises(NoValidQuestions):
            generate_questions(self.owner, self.quiz.pk, 3, url=self.URL)
        self.assertEqual(self._status(), Quiz.IDLE)

    def test_request_validation(self, generate_content):
        for count in (0, -1, 51, "5", True):
            with self.assertRaises(ValidationError):
                generate_questions(self.owner, self.quiz.pk, count, url=self.URL)
        with self.assertRaises(ValidationError):
            generate_questions(self.owner, self.quiz.pk, 3, url="ftp://example.com/file")
        with self.assertRaises(ValidationError):
            generate_questions(self.owner, self.quiz.pk, 3)
        with self.assertRaises(Forbidden):
            generate_questions(self.other, self.quiz.pk, 3, url=self.URL)
        generate_content.assert_not_called()

    def test_generation_is_rate_limited(self, generate_content):
        generate_content.return_value = json.dumps([mcq("Q")])
        with override_settings(QUIZFORGE_RATE_LIMITS={
            "generate_questions": {"capacity": 1, "rate": 1, "period": 3600},
        }):
            generate_questions(self.owner, self.quiz.pk, 1, url=self.URL)
            with self.assertRaises(RateLimited):
                generate_questions(self.owner, self.quiz.pk, 1, url=self.URL)
        self.assertEqual(generate_content.call_count, 1)
        self.assertEqual(self._status(), Quiz.IDLE)


@mock.patch("generate_quiz.llm.generate_content")
class FileSourceTests(TestCase):
    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media_root)
        self.override.enable()
        self.owner = get_user_model().objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=self.owner, slug="gen02")

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_text_file_is_inlined_into_prompt(self, generate_content):
        source = storage.save_upload(
            self.owner, SimpleUploadedFile("notes.txt", b"Mitochondria make ATP.", content_type="text/plain")
        )
        generate_content.return_value = json.dumps([mcq("What makes ATP?")])

        generate_questions(self.owner, self.quiz.pk, 1, file_id=source.pk)

        prompt, attachment = generate_content.call_args[0]
        self.assertIn("Mitochondria make ATP.", prompt)
        self.assertIsNone(attachment)

    def test_unsupported_type(self, generate_content):
        source = storage.save_upload(
            self.owner, SimpleUploadedFile("tool.exe", b"MZ", content_type="application/x-msdownload")
        )
        with self.assertRaises(UnsupportedContent):
            generate_questions(self.owner, self.quiz.pk, 1, file_id=source.pk)
        generate_content.assert_not_called()

    def test_generate_endpoint(self, generate_content):
        generate_content.return_value = json.dumps([mcq("Q1"), mcq("Q2", answer="B")])
        self.client.force_login(self.owner)

        resp = self.client.post(
            reverse("generate_questions", args=[self.quiz.pk]),
            data=json.dumps({"source_type": "url", "url": "https://example.com", "num_questions": 2}),
            content_type="application/json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 2)
        self.assertEqual(Question.objects.filter(quiz=self.quiz).count(), 2)

        Quiz.objects.filter(pk=self.quiz.pk).update(generation_status=Quiz.GENERATING)
        resp = self.client.post(
            reverse("generate_questions", args=[self.quiz.pk]),
            data=json.dumps({"source_type": "url", "url": "https://example.com", "num_questions": 2}),
            content_type="application/json",
        )
        self.assertEqual(resp.status_code, 409)


class ConcurrentGenerationTests(TransactionTestCase):
    SLOW_URL = "https://example.com/slow"
    FAST_URL = "https://example.com/fast"

    def setUp(self):
        self.owner = get_user_model().objects.create_user(username="owner", password="pass")
        self.quiz = Quiz.objects.create(owner=self.owner, slug="conc1")
        self.other_quiz = Quiz.objects.create(owner=self.owner, slug="conc2")
        self.started = threading.Event()
        self.proceed = threading.Event()

    def _fake_model(self, prompt, attachment=None):
        if self.SLOW_URL in prompt:
            self.started.set()
            self.proceed.wait(timeout=10)
        return json.dumps([mcq("Q1"), mcq("Q2", answer="B")])

    def _generate_in_thread(self, errors, results):
        try:
            results.append(generate_questions(self.owner, self.quiz.pk, 2, url=self.SLOW_URL))
        except Exception as e:
            errors.append(e)
        finally:
            connections.close_all()

    def test_second_generation_on_same_quiz_is_rejected(self):
        errors, results = [], []
        with mock.patch("generate_quiz.llm.generate_content", side_effect=self._fake_model) as generate_content:
            worker = threading.Thread(target=self._generate_in_thread, args=(errors, results))
            worker.start()
            try:
                self.assertTrue(self.started.wait(timeout=10))
                self.assertEqual(Quiz.objects.get(pk=self.quiz.pk).generation_status, Quiz.GENERATING)

                with self.assertRaises(AlreadyInProgress):
                    generate_questions(self.owner, self.quiz.pk, 2, url=self.FAST_URL)

                # Another quiz is not blocked by the first one's guard.
                other = generate_questions(self.owner, self.other_quiz.pk, 2, url=self.FAST_URL)
                self.assertEqual(other.count, 2)
            finally:
                self.proceed.set()
                worker.join(timeout=10)

        self.assertEqual(errors, [])
        self.assertEqual(results[0].count, 2)
        self.assertEqual(generate_content.call_count, 2)
        self.assertEqual([q.order for q in question_bank.list_questions(self.quiz.pk)], [1, 2])
        self.assertEqual(Quiz.objects.get(pk=self.quiz.pk).generation_status, Quiz.IDLE)
