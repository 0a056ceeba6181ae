"""Output-format descriptors and the format instructions sent to the model.

A descriptor is a plain mapping such as::

    {
        "question": "question",
        "category": ["easy", "medium", "hard"],
        "<topic>": "description of the topic",
    }

Values are a description string, a list of candidate strings, or a nested
descriptor.  Keys containing ``<...>`` markers are generated by the model.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

_PLACEHOLDER_RE = re.compile(r"<.*?>")


@dataclass(frozen=True)
class FixedField:
    """Field whose name the model must reproduce exactly."""

    name: str
    spec: Any

    @property
    def choices(self) -> Optional[Tuple[str, ...]]:
        """Candidate values when the field is a classification, else None."""
        return self.spec if _is_choices(self.spec) else None


@dataclass(frozen=True)
class TemplatedField:
    """Field whose name is itself generated by the model."""

    template: str
    spec: Any


FormatField = Union[FixedField, TemplatedField]


@dataclass(frozen=True)
class NestedFields:
    """Parsed nested descriptor (the field's value is a json object)."""

    fields: Tuple[FormatField, ...]


def has_placeholder(text: str) -> bool:
    return bool(_PLACEHOLDER_RE.search(text))


def _parse_spec(value: Any) -> Any:
    if isinstance(value, Mapping):
        return NestedFields(_parse_fields(value))
    if isinstance(value, (list, tuple)):
        return tuple(str(choice) for choice in value)
    return str(value)


def _parse_fields(mapping: Mapping[str, Any]) -> Tuple[FormatField, ...]:
    fields = []
    for key, value in mapping.items():
        spec = _parse_spec(value)
        if has_placeholder(key):
            fields.append(TemplatedField(template=key, spec=spec))
        else:
            fields.append(FixedField(name=key, spec=spec))
    return tuple(fields)


def _is_choices(spec: Any) -> bool:
    return isinstance(spec, tuple) and bool(spec) and all(isinstance(s, str) for s in spec)


def _is_nested(spec: Any) -> bool:
    return isinstance(spec, NestedFields)


class OutputFormat:
    """Parsed output-format descriptor.

    Keeps the raw mapping (sent verbatim to the model) alongside the tagged
    field entries used for validation.
    """

    def __init__(self, mapping: Mapping[str, Any]):
        if not mapping:
            raise ValueError("Output format must define at least one field")
        self.raw = dict(mapping)
        self.fields = _parse_fields(mapping)

    @classmethod
    def coerce(cls, output_format: Union["OutputFormat", Mapping[str, Any]]) -> "OutputFormat":
        if isinstance(output_format, OutputFormat):
            return output_format
        return cls(output_format)

    @property
    def fixed_fields(self) -> Tuple[FixedField, ...]:
        return tuple(f for f in self.fields if isinstance(f, FixedField))

    @property
    def has_choices(self) -> bool:
        """True if any field at any depth is a list of candidates."""
        return _any_field(self.fields, lambda f: _is_choices(f.spec))

    @property
    def has_placeholders(self) -> bool:
        """True if any key or value at any depth carries a ``<...>`` marker."""
        def check(f: FormatField) -> bool:
            if isinstance(f, TemplatedField):
                return True
            if isinstance(f.spec, str):
                return has_placeholder(f.spec)
            if _is_choices(f.spec):
                return any(has_placeholder(choice) for choice in f.spec)
            return False

        return _any_field(self.fields, check)

    def to_json(self) -> str:
        return json.dumps(self.raw, ensure_ascii=False)


def _any_field(fields: Tuple[FormatField, ...], predicate) -> bool:
    for f in fields:
        if predicate(f):
            return True
        if _is_nested(f.spec) and _any_field(f.spec.fields, predicate):
            return True
    return False


def build_format_prompt(output_format: Union[OutputFormat, Mapping[str, Any]], list_input: bool = False) -> str:
    """Build the instructions appended to the system prompt.

    Args:
        output_format: Descriptor (mapping or parsed :class:`OutputFormat`).
        list_input: True when several user prompts go out in one request.

    Returns:
        Instruction text, starting with a newline.
    """
    fmt = OutputFormat.coerce(output_format)

    prompt = (
        f"\nYou are to output the following in json format: {fmt.to_json()}. "
        "\nDo not put quotation marks or escape character \\ in the output fields."
    )

    if fmt.has_choices:
        prompt += "\nIf output field is a list, classify output into the best element of the list."

    if fmt.has_placeholders:
        prompt += (
            "\nAny text enclosed by < and > indicates you must generate content to replace it. "
            "Example input: Go to <location>, Example output: Go to the garden"
            "\nAny output key containing < and > indicates you must generate the key name to replace it. "
            "Example input: {'<location>': 'description of location'}, "
            "Example output: {school: a place for education}"
        )

    if list_input:
        prompt += (
            "\nGenerate a list of json, one json for each input element, "
            "in the same order as the input."
        )

    return prompt
