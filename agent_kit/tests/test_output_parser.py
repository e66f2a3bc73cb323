from dataclasses import dataclass
from enum import Enum

import pytest

from agent_kit.domain.exceptions import AgentError
from agent_kit.output import extract_json_object, parse_output


@dataclass
class Result:
    message: str
    code: int


class Level(str, Enum):
    LOW = "low"
    HIGH = "high"


@dataclass
class Assessment:
    level: Level
    note: str = ""


RAW = '{"message": "Success", "code": 200}'


@pytest.mark.parametrize(
    "content",
    [
        RAW,
        f"Here is the result:\n```json\n{RAW}\n```\nLet me know if you need more.",
        f"The final answer is {RAW} as requested.",
    ],
)
def test_three_forms_populate_identical_instance(content):
    assert parse_output(content, Result) == Result(message="Success", code=200)


def test_fenced_block_preferred_over_bare_span():
    content = 'Note {not json} then\n```json\n{"message": "ok", "code": 1}\n```'
    assert parse_output(content, Result) == Result(message="ok", code=1)


def test_unknown_keys_dropped_and_missing_keys_zeroed():
    assert parse_output('{"message": "hi", "extra": true}', Result) == Result(message="hi", code=0)


def test_enum_fields_coerced():
    assert parse_output('{"level": "high"}', Assessment).level is Level.HIGH


def test_null_content_rejected():
    with pytest.raises(AgentError) as exc_info:
        parse_output(None, Result)
    assert exc_info.value.code == "OUTPUT_EMPTY"


def test_unknown_target_rejected():
    with pytest.raises(AgentError) as exc_info:
        parse_output(RAW, dict)
    assert exc_info.value.code == "OUTPUT_TYPE_UNKNOWN"


@pytest.mark.parametrize("content", ["no json here", "42", "[1, 2, 3]", "{broken"])
def test_unparseable_content_rejected(content):
    with pytest.raises(AgentError) as exc_info:
        parse_output(content, Result)
    assert exc_info.value.code == "OUTPUT_PARSE_ERROR"


def test_build_failure_wrapped():
    with pytest.raises(AgentError) as exc_info:
        parse_output('{"level": "extreme"}', Assessment)
    assert exc_info.value.code == "OUTPUT_BUILD_ERROR"
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_extract_json_object():
    assert extract_json_object("prefix {\"a\": 1} suffix") == {"a": 1}
    assert extract_json_object("nothing") is None
