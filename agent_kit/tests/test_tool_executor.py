from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pytest

from agent_kit.domain.exceptions import ToolError
from agent_kit.tools import ToolExecutor, ToolRegistry, tool


class Operation(str, Enum):
    ADD = "add"
    MULTIPLY = "multiply"


class Status(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Color(Enum):
    RED = 1
    GREEN = 2


@dataclass
class CalcParams:
    a: float
    b: float
    operation: Operation = Operation.ADD


@dataclass
class WeatherParams:
    city: str
    unit: str = "celsius"


@dataclass
class StatusParams:
    status: Status
    color: Color = Color.RED


@dataclass
class Location:
    lat: float
    lon: float


@dataclass
class PlaceParams:
    name: str
    location: Optional[Location] = None


@tool("calculate", "Perform arithmetic")
def calculate(params: CalcParams) -> float:
    if params.operation is Operation.MULTIPLY:
        return params.a * params.b
    return params.a + params.b


@tool("get_weather", "Get the weather")
def get_weather(params: WeatherParams) -> dict:
    return {"city": params.city, "unit": params.unit}


@tool("set_status", "Set status")
def set_status(params: StatusParams) -> StatusParams:
    return params


@tool("locate", "Locate a place")
def locate(params: PlaceParams) -> PlaceParams:
    return params


@tool("explode", "Always fails")
def explode(params: WeatherParams) -> None:
    raise RuntimeError("boom")


@pytest.fixture
def executor():
    registry = ToolRegistry()
    registry.register_many([calculate, get_weather, set_status, locate, explode])
    return ToolExecutor(registry)


def test_execute_calculator(executor):
    assert executor.execute("calculate", {"a": 2, "b": 3}) == 5
    assert executor.execute("calculate", {"a": 2, "b": 3, "operation": "multiply"}) == 6


def test_defaults_kept_and_extra_keys_dropped(executor):
    result = executor.execute("get_weather", {"city": "Paris", "mood": "sunny"})
    assert result == {"city": "Paris", "unit": "celsius"}


def test_missing_arguments_use_zero_values(executor):
    assert executor.execute("get_weather") == {"city": "", "unit": "celsius"}


@pytest.mark.parametrize("value, expected", [("pending", Status.PENDING), ("active", Status.ACTIVE), ("inactive", Status.INACTIVE)])
def test_backed_enum_resolved_by_value(executor, value, expected):
    assert executor.execute("set_status", {"status": value}).status is expected


def test_unmatched_backed_enum_fails(executor):
    with pytest.raises(ToolError) as exc_info:
        executor.execute("set_status", {"status": "archived"})
    assert exc_info.value.code == "TOOL_ARGUMENT_ERROR"
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_value_less_enum_resolved_by_name(executor):
    assert executor.execute("set_status", {"status": "active", "color": "GREEN"}).color is Color.GREEN
    # 没有同名成员时保留默认值
    assert executor.execute("set_status", {"status": "active", "color": "purple"}).color is Color.RED


def test_nested_structure_built_from_mapping(executor):
    place = executor.execute("locate", {"name": "Office", "location": {"lat": 52.5, "lon": 13.4}})
    assert place.location == Location(lat=52.5, lon=13.4)


def test_handler_failure_wrapped_with_cause(executor):
    with pytest.raises(ToolError) as exc_info:
        executor.execute("explode", {"city": "x"})
    assert exc_info.value.code == "TOOL_EXECUTION_ERROR"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert "boom" in str(exc_info.value)


def test_unknown_tool(executor):
    with pytest.raises(ToolError) as exc_info:
        executor.execute("missing", {})
    assert exc_info.value.code == "TOOL_NOT_FOUND"


def test_non_mapping_arguments_rejected(executor):
    with pytest.raises(ToolError) as exc_info:
        executor.execute("get_weather", ["Paris"])
    assert exc_info.value.code == "TOOL_ARGUMENT_ERROR"


def test_handler_called_exactly_once():
    calls = []

    @tool("count", "Count calls")
    def count(params: WeatherParams) -> int:
        calls.append(params.city)
        return len(calls)

    registry = ToolRegistry()
    registry.register(count)
    assert ToolExecutor(registry).execute("count", {"city": "Rome"}) == 1
    assert calls == ["Rome"]
