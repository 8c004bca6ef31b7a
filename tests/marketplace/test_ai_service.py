"""
Unit tests for AI calculator generation: response parsing and the OpenAI call.
OpenAI is mocked; no network.
"""
import json
import unittest
from unittest.mock import MagicMock, patch

import httpx
import openai

from bohocalc.projects.marketplace.core.ai_prompt import build_system_prompt, build_user_prompt
from bohocalc.projects.marketplace.core.ai_service import (
    EmptyCompletionError,
    MissingAPIKeyError,
    ResponseParseError,
    UpstreamRequestError,
    call_calculator_llm,
    generate_calculator,
    parse_calculator_response,
)

VALID_CALCULATOR = {
    "name": "Simple Interest Calculator",
    "description": "Calculate simple interest",
    "formula": "principal * rate * time / 100",
    "variables": [
        {"name": "principal", "label": "Principal Amount", "type": "number", "defaultValue": 1000, "unit": "$"},
        {"name": "rate", "label": "Interest Rate", "type": "number", "defaultValue": 5, "unit": "%"},
        {"name": "time", "label": "Time Period", "type": "number", "defaultValue": 1, "unit": "years"},
    ],
    "category": "Finance",
}


def _completion(content, finish_reason="stop", prompt_tokens=120, completion_tokens=80):
    completion = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    completion.choices = [choice]
    completion.usage.prompt_tokens = prompt_tokens
    completion.usage.completion_tokens = completion_tokens
    return completion


class TestPrompts(unittest.TestCase):

    def test_user_prompt_appends_additional_details(self):
        self.assertEqual(
            build_user_prompt("Loan payment", "monthly, 30 years"),
            "Loan payment Additional details: monthly, 30 years",
        )

    def test_user_prompt_without_details(self):
        self.assertEqual(build_user_prompt("  Loan payment  ", "   "), "Loan payment")

    def test_system_prompt_lists_categories(self):
        prompt = build_system_prompt(["Finance", "Other"])
        self.assertIn("Finance, Other", prompt)
        self.assertNotIn("{categories}", prompt)


class TestParseCalculatorResponse(unittest.TestCase):

    def test_plain_json(self):
        data = parse_calculator_response(json.dumps(VALID_CALCULATOR))
        self.assertEqual(data["name"], "Simple Interest Calculator")
        self.assertEqual(data["category"], "Finance")
        self.assertEqual([v["name"] for v in data["variables"]], ["principal", "rate", "time"])

    def test_fenced_json(self):
        content = "```json\n" + json.dumps(VALID_CALCULATOR) + "\n```"
        data = parse_calculator_response(content)
        self.assertEqual(data["formula"], "principal * rate * time / 100")

    def test_missing_required_field_rejected(self):
        bad = dict(VALID_CALCULATOR)
        del bad["formula"]
        with self.assertRaises(ResponseParseError) as ctx:
            parse_calculator_response(json.dumps(bad))
        self.assertEqual(ctx.exception.details, "Missing required fields in calculator data")
        self.assertIsNotNone(ctx.exception.raw_content)

    def test_blank_name_rejected(self):
        bad = dict(VALID_CALCULATOR, name="   ")
        with self.assertRaises(ResponseParseError):
            parse_calculator_response(json.dumps(bad))

    def test_not_json_rejected(self):
        with self.assertRaises(ResponseParseError) as ctx:
            parse_calculator_response("Sorry, I can't help with that.")
        payload = ctx.exception.to_dict()
        self.assertEqual(payload["error"], "Failed to parse AI response")
        self.assertEqual(payload["rawContent"], "Sorry, I can't help with that.")

    def test_json_array_rejected(self):
        with self.assertRaises(ResponseParseError):
            parse_calculator_response("[1, 2, 3]")

    def test_variables_default_to_empty_list(self):
        data = parse_calculator_response(json.dumps(dict(
            VALID_CALCULATOR, formula="2 * pi", variables="none",
        )))
        self.assertEqual(data["variables"], [])

    def test_formula_with_undeclared_variable_rejected(self):
        bad = dict(VALID_CALCULATOR, formula="principal * rate * years")
        with self.assertRaises(ResponseParseError) as ctx:
            parse_calculator_response(json.dumps(bad))
        self.assertIn("years", ctx.exception.details)

    def test_bad_variable_name_rejected(self):
        bad = dict(VALID_CALCULATOR, formula="1", variables=[{"name": "2fast", "label": "x"}])
        with self.assertRaises(ResponseParseError):
            parse_calculator_response(json.dumps(bad))

    def test_unknown_category_becomes_other(self):
        data = parse_calculator_response(json.dumps(dict(VALID_CALCULATOR, category="Cooking")))
        self.assertEqual(data["category"], "Other")


@patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"})
class TestCallCalculatorLlm(unittest.TestCase):

    @patch("bohocalc.projects.marketplace.core.ai_service.OpenAI")
    def test_success_returns_content_and_tokens(self, mock_openai_cls):
        mock_openai_cls.return_value.chat.completions.create.return_value = _completion("  {}  ")
        content, metadata = call_calculator_llm("Simple interest", model="gpt-4o-mini")
        self.assertEqual(content, "{}")
        self.assertEqual(metadata["input_tokens"], 120)
        self.assertEqual(metadata["output_tokens"], 80)

        kwargs = mock_openai_cls.return_value.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["temperature"], 0.3)
        self.assertEqual(kwargs["max_tokens"], 1000)
        self.assertEqual(kwargs["messages"][0]["role"], "system")
        self.assertEqual(kwargs["messages"][1], {"role": "user", "content": "Simple interest"})

    @patch("bohocalc.projects.marketplace.core.ai_service.OpenAI")
    def test_empty_content_raises(self, mock_openai_cls):
        mock_openai_cls.return_value.chat.completions.create.return_value = _completion(None)
        with self.assertRaises(EmptyCompletionError):
            call_calculator_llm("anything")

    @patch("bohocalc.projects.marketplace.core.ai_service.OpenAI")
    def test_api_status_error_raises_upstream_error(self, mock_openai_cls):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, request=request)
        mock_openai_cls.return_value.chat.completions.create.side_effect = openai.RateLimitError(
            "Rate limit exceeded", response=response, body=None,
        )
        with self.assertRaises(UpstreamRequestError) as ctx:
            call_calculator_llm("anything")
        self.assertEqual(ctx.exception.to_dict()["error"], "OpenAI API request failed")
        self.assertIn("Rate limit", ctx.exception.details)

    @patch("bohocalc.projects.marketplace.core.ai_service.OpenAI")
    def test_connection_error_raises_upstream_error(self, mock_openai_cls):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_openai_cls.return_value.chat.completions.create.side_effect = openai.APIConnectionError(
            request=request,
        )
        with self.assertRaises(UpstreamRequestError):
            call_calculator_llm("anything")

    @patch("bohocalc.projects.marketplace.core.ai_service.OpenAI")
    def test_generate_calculator_end_to_end(self, mock_openai_cls):
        mock_openai_cls.return_value.chat.completions.create.return_value = _completion(
            "```json\n" + json.dumps(VALID_CALCULATOR) + "\n```"
        )
        data, metadata = generate_calculator("Simple interest", "yearly")
        self.assertEqual(data["name"], "Simple Interest Calculator")
        self.assertEqual(metadata["finish_reason"], "stop")
        kwargs = mock_openai_cls.return_value.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["messages"][1]["content"], "Simple interest Additional details: yearly")


class TestMissingApiKey(unittest.TestCase):

    @patch.dict("os.environ", {"OPENAI_API_KEY": ""})
    def test_missing_key_raises(self):
        with self.assertRaises(MissingAPIKeyError) as ctx:
            call_calculator_llm("anything")
        self.assertEqual(ctx.exception.to_dict(), {"error": "OpenAI API key not configured"})


if __name__ == "__main__":
    unittest.main()
