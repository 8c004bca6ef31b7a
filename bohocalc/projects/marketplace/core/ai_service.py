"""
Calculator generation service.
Sends a natural-language request to OpenAI and turns the JSON reply into a
validated calculator definition.
"""

import logging
import os

import openai
from openai import OpenAI

from bohocalc.projects.marketplace.core.ai_prompt import build_system_prompt, build_user_prompt
from bohocalc.projects.marketplace.core.constants import (
    CATEGORIES,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
)
from bohocalc.projects.marketplace.core.formula import FormulaError, validate_formula
from bohocalc.projects.marketplace.core.variables import (
    VariableError,
    normalize_category,
    normalize_variables,
)
from bohocalc.utils.llm_json import extract_json_object

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
TEMPERATURE = 0.3
MAX_TOKENS = 1000
TIMEOUT_SECONDS = 60

REQUIRED_FIELDS = ("name", "description", "formula")


class CalculatorGenerationError(Exception):
    """Base class for failures while generating a calculator."""

    error = "Internal server error"
    status_code = 500

    def __init__(self, details=None, raw_content=None):
        super().__init__(details or self.error)
        self.details = details
        self.raw_content = raw_content

    def to_dict(self):
        payload = {"error": self.error}
        if self.details:
            payload["details"] = self.details
        if self.raw_content is not None:
            payload["rawContent"] = self.raw_content
        return payload


class MissingAPIKeyError(CalculatorGenerationError):
    error = "OpenAI API key not configured"


class UpstreamRequestError(CalculatorGenerationError):
    error = "OpenAI API request failed"


class EmptyCompletionError(CalculatorGenerationError):
    error = "Invalid response from OpenAI"


class ResponseParseError(CalculatorGenerationError):
    error = "Failed to parse AI response"


def get_api_key():
    """OpenAI key from the environment; raises MissingAPIKeyError when unset."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise MissingAPIKeyError()
    return api_key


def call_calculator_llm(user_prompt: str, model: str = DEFAULT_MODEL) -> tuple[str, dict]:
    """
    Ask OpenAI for a calculator definition.
    Returns (response_text, metadata_dict).
    metadata_dict has input_tokens, output_tokens and finish_reason.
    Raises MissingAPIKeyError, UpstreamRequestError or EmptyCompletionError.
    """
    api_key = get_api_key()
    client = OpenAI(api_key=api_key, timeout=TIMEOUT_SECONDS)

    try:
        completion = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": build_system_prompt(CATEGORIES)},
                {"role": "user", "content": user_prompt},
            ],
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
    except openai.APIStatusError as e:
        logger.error(f"OpenAI API error ({e.status_code}): {e.message}")
        raise UpstreamRequestError(e.message or "Unknown error") from e
    except openai.APIError as e:
        logger.error(f"OpenAI request failed: {e}")
        raise UpstreamRequestError(str(e) or "Unknown error") from e

    choice = completion.choices[0] if completion.choices else None
    content = choice.message.content if choice and choice.message else None
    if not content:
        logger.warning(
            f"OpenAI returned empty response. Finish reason: {choice.finish_reason if choice else None}"
        )
        raise EmptyCompletionError()

    usage = completion.usage
    metadata = {
        "input_tokens": (usage.prompt_tokens or 0) if usage else 0,
        "output_tokens": (usage.completion_tokens or 0) if usage else 0,
        "finish_reason": choice.finish_reason,
    }
    return content.strip(), metadata


def parse_calculator_response(content: str) -> dict:
    """
    Turn the model's reply into a calculator definition.

    Strips markdown fences, extracts the JSON object, requires non-empty
    name/description/formula, defaults variables to [] when not a list, and
    validates variables and formula the same way manual creation does.

    Raises:
        ResponseParseError: carrying the reason and the raw content
    """
    parsed, err = extract_json_object(content)
    if parsed is None:
        raise ResponseParseError(err, raw_content=content)

    for field in REQUIRED_FIELDS:
        value = parsed.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ResponseParseError("Missing required fields in calculator data", raw_content=content)

    raw_variables = parsed.get("variables")
    if not isinstance(raw_variables, list):
        raw_variables = []

    try:
        variables = normalize_variables(raw_variables)
        formula = parsed["formula"].strip()
        validate_formula(formula, [v["name"] for v in variables])
    except (VariableError, FormulaError) as e:
        raise ResponseParseError(str(e), raw_content=content) from e

    return {
        "name": parsed["name"].strip()[:MAX_NAME_LENGTH],
        "description": parsed["description"].strip()[:MAX_DESCRIPTION_LENGTH],
        "formula": formula,
        "variables": variables,
        "category": normalize_category(parsed.get("category")),
    }


def generate_calculator(prompt: str, user_input: str = None, model: str = DEFAULT_MODEL):
    """
    Full generation flow. Returns (calculator_data, metadata).
    Raises a CalculatorGenerationError subclass on any failure.
    """
    content, metadata = call_calculator_llm(build_user_prompt(prompt, user_input), model=model)
    return parse_calculator_response(content), metadata
