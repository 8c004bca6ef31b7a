"""
Helpers for reading JSON out of language-model replies.
"""

import json
import re

FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?|\n?```")


def strip_code_fences(content):
    """Remove markdown code fences (```json ... ```) wherever they appear."""
    return FENCE_RE.sub("", content or "").strip()


def extract_json_object(content):
    """Extract first JSON object from LLM response. Strips markdown fences. Returns (parsed_dict, None) or (None, error_msg)."""
    if not content or not content.strip():
        return None, "Empty response"
    s = strip_code_fences(content)
    # Find first { and extract matching object by brace counting
    start = s.find("{")
    if start < 0:
        return None, "No JSON object found"
    depth = 0
    in_string = False
    escape = False
    end = start
    for i, c in enumerate(s[start:], start):
        if escape:
            escape = False
            continue
        if c == "\\" and in_string:
            escape = True
            continue
        if in_string:
            if c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if depth != 0:
        return None, "Unbalanced braces"
    try:
        parsed = json.loads(s[start : end + 1])
    except json.JSONDecodeError as e:
        return None, str(e)
    if not isinstance(parsed, dict):
        return None, "Expected a JSON object"
    return parsed, None
