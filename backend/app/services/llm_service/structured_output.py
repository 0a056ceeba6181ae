"""Structured LLM output with JSON repair, validation and attempt retries.

:func:`strict_output` coerces a free-form chat completion into the shape
described by an output-format descriptor:

- format instructions are appended to the system prompt on every attempt
- transport failures go through :func:`with_retry` (exponential back-off),
  then a linear back-off between extractor attempts
- malformed or incomplete output is fed back to the model as error context
- candidate fields are snapped to a default category and stripped of
  inline explanations

An empty list is returned once every attempt has failed; callers treat it
as "use the fallback".
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from langchain_core.messages import HumanMessage, SystemMessage

from app.core.config import settings
from app.services.llm_service.format_prompt import OutputFormat, build_format_prompt
from app.services.llm_service.llm import get_llm
from app.services.llm_service.retry import with_retry

logger = logging.getLogger(__name__)


class OutputShapeError(ValueError):
    """Parsed output does not match the descriptor."""


# ── JSON Extraction Patterns ──────────────────────────────────

_CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?|```\s*", re.DOTALL)
_THINK_TAG_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_APOSTROPHE_RE = re.compile(r"(\w)\"(\w)")


# ── Response post-processing ──────────────────────────────────


def normalize_quotes(text: str) -> str:
    """Promote single quotes to double quotes, keeping word-internal apostrophes.

    Best-effort: ``{'a': 'it's'}`` becomes ``{"a": "it's"}``, but an
    apostrophe next to punctuation or whitespace is still turned into a
    double quote.
    """
    text = text.replace("'", '"')
    return _APOSTROPHE_RE.sub(r"\1'\2", text)


def _clean_json_text(text: str) -> str:
    """Remove markdown fences, reasoning tags, and explanatory text."""
    text = _THINK_TAG_RE.sub("", text).strip()
    text = _CODE_FENCE_RE.sub("", text).strip()
    text = re.sub(r"^(Here's|Here is|The JSON|Output:|Response:)\s*:?\s*", "", text, flags=re.IGNORECASE)
    return text.strip()


def _extract_json_block(text: str) -> str:
    """Extract the first {...} or [...] block from text."""
    start_brace = text.find("{")
    start_bracket = text.find("[")

    if start_brace == -1 and start_bracket == -1:
        raise ValueError("No JSON block found")

    if start_bracket == -1 or (start_brace != -1 and start_brace < start_bracket):
        start, end = start_brace, text.rfind("}")
    else:
        start, end = start_bracket, text.rfind("]")

    if end > start:
        return text[start:end + 1]
    raise ValueError("Could not extract complete JSON block")


def parse_json_output(text: str, repair: bool = False) -> Any:
    """Parse JSON from model output.

    Attempts, in order: direct parse, parse after stripping fences/tags,
    parse of the first JSON block, and (when *repair* is set) the
    ``json_repair`` library.

    Raises:
        ValueError: If no attempt yields JSON; the message carries the
            direct-parse error.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        first_error = exc

    cleaned = _clean_json_text(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(_extract_json_block(cleaned))
    except ValueError:
        pass

    if repair:
        import json_repair

        repaired = json_repair.loads(cleaned)
        if repaired not in ("", None):
            logger.info("Model output recovered with json_repair")
            return repaired

    raise ValueError(f"Invalid JSON: {first_error}")


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # Multi-part messages: keep the text parts
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    return str(content or "")


# ── Validation ────────────────────────────────────────────────


def _coerce_choice(value: Any, choices: Tuple[str, ...], default_category: str) -> Any:
    if isinstance(value, list):
        if not value:
            raise OutputShapeError("Classification field is an empty list")
        value = value[0]
    if value not in choices and default_category:
        value = default_category
    if isinstance(value, str) and ":" in value:
        value = value.split(":")[0]
    return value


def validate_output(
    output: Any,
    output_format: OutputFormat,
    list_input: bool = False,
    default_category: str = "",
    output_value_only: bool = False,
) -> Any:
    """Check parsed output against *output_format* and normalise it.

    Raises:
        OutputShapeError: On a non-list answer to list input, a non-object
            element, or a missing field.
    """
    if list_input:
        if not isinstance(output, list):
            raise OutputShapeError("Output format not in a list of json")
    else:
        output = [output]

    validated: List[Any] = []
    for index, element in enumerate(output):
        if not isinstance(element, dict):
            raise OutputShapeError(f"Output element {index} is not a json object")

        # Templated keys are generated by the model and cannot be checked
        for field in output_format.fixed_fields:
            if field.name not in element:
                raise OutputShapeError(f"{field.name} not in json output")
            if field.choices is not None:
                element[field.name] = _coerce_choice(element[field.name], field.choices, default_category)

        if output_value_only:
            values = list(element.values())
            validated.append(values[0] if len(values) == 1 else values)
        else:
            validated.append(element)

    return validated if list_input else validated[0]


# ── Structured Invocation with Retry ──────────────────────────


async def strict_output(
    system_prompt: str,
    user_prompt: Union[str, Sequence[str]],
    output_format: Union[OutputFormat, Mapping[str, Any]],
    default_category: str = "",
    output_value_only: bool = False,
    model: Optional[str] = None,
    temperature: float = 1.0,
    num_tries: int = 3,
    verbose: bool = False,
    llm: Any = None,
    attempt_backoff: Optional[float] = None,
) -> Any:
    """Ask the model for JSON matching *output_format*, retrying until it does.

    Args:
        system_prompt: Base system prompt; format instructions are appended.
        user_prompt: One prompt, or a list of prompts answered in a single
            request as a JSON array (one element per prompt, same order).
        output_format: Descriptor mapping or parsed :class:`OutputFormat`.
        default_category: Substituted when a classification field gets a
            value outside its candidates.
        output_value_only: Return field values instead of objects.
        model: Model identifier; OPENAI_MODEL when None.
        temperature: Sampling temperature.
        num_tries: Maximum extractor attempts.
        verbose: Log prompts and responses at INFO instead of DEBUG.
        llm: Chat model to use instead of :func:`get_llm`.
        attempt_backoff: Seconds multiplied by the attempt number between
            transport failures (default: STRUCTURED_ATTEMPT_BACKOFF).

    Returns:
        A list of outputs for list input, a single output otherwise, or
        ``[]`` when every attempt failed.

    Raises:
        ValueError: If *num_tries* < 1 or the descriptor is empty.
    """
    if num_tries < 1:
        raise ValueError("num_tries must be >= 1")
    fmt = OutputFormat.coerce(output_format)

    list_input = isinstance(user_prompt, (list, tuple))
    user_content = json.dumps(list(user_prompt), ensure_ascii=False) if list_input else str(user_prompt)
    format_prompt = build_format_prompt(fmt, list_input=list_input)
    backoff = settings.STRUCTURED_ATTEMPT_BACKOFF if attempt_backoff is None else attempt_backoff
    log_level = logging.INFO if verbose else logging.DEBUG

    if llm is None:
        llm = get_llm(model=model, temperature=temperature)

    error_msg = ""

    for attempt in range(num_tries):
        full_system_prompt = system_prompt + format_prompt + error_msg
        messages = [
            SystemMessage(content=full_system_prompt),
            HumanMessage(content=user_content),
        ]

        try:
            response = await with_retry(lambda: llm.ainvoke(messages))
        except Exception as exc:
            if attempt == num_tries - 1:
                logger.error(f"LLM error after {num_tries} attempts: {type(exc).__name__}: {exc}")
                return []
            delay = backoff * (attempt + 1)
            logger.warning(
                f"LLM call failed (attempt {attempt + 1}/{num_tries}): "
                f"{type(exc).__name__}: {str(exc)[:200]}; next attempt in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            continue

        res = normalize_quotes(_response_text(response))

        logger.log(log_level, "System prompt: %s", full_system_prompt)
        logger.log(log_level, "User prompt: %s", user_content)
        logger.log(log_level, "Model response: %s", res)

        try:
            output = parse_json_output(res, repair=settings.STRUCTURED_JSON_REPAIR)
            result = validate_output(output, fmt, list_input, default_category, output_value_only)
            logger.info(f"Structured output validated (attempt {attempt + 1}/{num_tries})")
            return result
        except (ValueError, RecursionError) as exc:
            # RecursionError: json nested too deeply to decode
            error_msg = f"\n\nResult: {res}\n\nError message: {exc}"
            logger.warning(
                f"Structured output rejected (attempt {attempt + 1}/{num_tries}): "
                f"{type(exc).__name__}: {str(exc)[:200]}"
            )
            logger.warning(f"Current invalid json format: {res[:1000]}")

    logger.error(f"Failed to produce valid structured output after {num_tries} attempts")
    return []
