import json
from dataclasses import dataclass

import pytest

from agent_kit.agents.agent import MAX_ITERATIONS, Agent
from agent_kit.agents.callbacks import AgentCallback
from agent_kit.domain.exceptions import AgentError, ToolError
from agent_kit.domain.models import ChatChoice, ChatMessage, ChatResult
from agent_kit.schema import generate_schema
from agent_kit.tools import ToolCall, ToolRegistry, tool


@dataclass
class WeatherParams:
    city: str


@dataclass
class Report:
    city: str
    temperature: int


@tool("get_weather", "Get the current weather for a city")
def get_weather(params: WeatherParams) -> dict:
    return {"city": params.city, "temperature": 21}


@tool("weather_report", "Get a structured weather report")
def weather_report(params: WeatherParams) -> Report:
    return Report(city=params.city, temperature=18)


def _result(content=None, finish_reason="stop", tool_calls=None):
    msg = ChatMessage(role="assistant", content=content, tool_calls=tool_calls)
    return ChatResult(provider="fake", model="gpt-4o", choices=[ChatChoice(index=0, message=msg, finish_reason=finish_reason)])


def _weather_call(call_id="call_1", arguments='{"city": "Paris"}', name="get_weather"):
    return _result(finish_reason="tool_calls", tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


class ScriptedProvider:
    name = "fake"

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def chat(self, req):
        self.requests.append(req)
        return self.responses.pop(0)


class LoopingProvider:
    name = "fake"

    def __init__(self):
        self.requests = []

    def chat(self, req):
        self.requests.append(req)
        return _weather_call(call_id=f"call_{len(self.requests)}")


class RecordingCallback(AgentCallback):
    def __init__(self):
        self.events = []

    def on_run_start(self, context):
        self.events.append(("run_start", context))

    def on_run_end(self, context):
        self.events.append(("run_end", context))

    def on_generation_start(self, context):
        self.events.append(("generation_start", context))

    def on_generation_end(self, context):
        self.events.append(("generation_end", context))

    def on_tool_call_start(self, context):
        self.events.append(("tool_call_start", context))

    def on_tool_call_end(self, context):
        self.events.append(("tool_call_end", context))

    def on_error(self, context):
        self.events.append(("error", context))


class BrokenCallback(AgentCallback):
    def _fail(self, context):
        raise RuntimeError("callback failure")

    on_run_start = on_run_end = on_generation_start = on_generation_end = _fail
    on_tool_call_start = on_tool_call_end = on_error = _fail


def _registry(*tools):
    registry = ToolRegistry()
    registry.register_many(tools)
    return registry


def test_tool_call_then_stop_returns_raw_content():
    provider = ScriptedProvider([_weather_call(), _result("It is 21 degrees in Paris.")])
    agent = Agent(provider, _registry(get_weather))

    assert agent.run("What's the weather in Paris?") == "It is 21 degrees in Paris."

    assert [m.role for m in agent.messages] == ["user", "assistant", "tool", "assistant"]
    tool_msg = agent.messages[2]
    assert tool_msg.tool_call_id == "call_1"
    assert json.loads(tool_msg.content) == {"city": "Paris", "temperature": 21}
    assert agent.messages[1].tool_calls[0].name == "get_weather"

    first, second = provider.requests
    assert len(first.messages) == 1
    assert len(second.messages) == 3
    assert first.tools == agent.registry.to_provider_format()
    assert first.response_format is None
    assert first.model == "gpt-4o"


def test_output_type_injects_system_message_and_response_format():
    provider = ScriptedProvider(
        [_weather_call(), _result('{"city": "Paris", "temperature": 21, "humidity": 40}')]
    )
    agent = Agent(provider, _registry(get_weather), output_type=Report, strict_output=False)

    report = agent.run("Weather report for Paris")

    assert report == Report(city="Paris", temperature=21)
    assert [m.role for m in agent.messages] == ["system", "user", "assistant", "tool", "assistant"]
    system = agent.messages[0].content
    assert json.dumps(generate_schema(Report), indent=4) in system
    assert "additionalProperties" not in system

    for req in provider.requests:
        fmt = req.response_format
        assert fmt["type"] == "json_schema"
        assert fmt["json_schema"]["name"] == "output"
        assert fmt["json_schema"]["strict"] is False
        assert fmt["json_schema"]["schema"] == {**generate_schema(Report), "additionalProperties": False}


def test_strict_output_flag_forwarded():
    provider = ScriptedProvider([_result('{"city": "Oslo", "temperature": 3}')])
    agent = Agent(provider, _registry(), output_type=Report, strict_output=True)
    agent.run("Oslo?")
    assert provider.requests[0].response_format["json_schema"]["strict"] is True
    assert provider.requests[0].tools is None


def test_iteration_cap():
    provider = LoopingProvider()
    agent = Agent(provider, _registry(get_weather))

    with pytest.raises(AgentError) as exc_info:
        agent.run("loop forever")

    assert exc_info.value.code == "MAX_ITERATIONS"
    assert len(provider.requests) == MAX_ITERATIONS == 20
    assert len(agent.messages) == 1 + 2 * MAX_ITERATIONS


def test_unexpected_finish_reason_keeps_history():
    provider = ScriptedProvider([_result("truncated", finish_reason="length")])
    agent = Agent(provider, _registry(get_weather))

    with pytest.raises(AgentError) as exc_info:
        agent.run("hi")

    assert exc_info.value.code == "UNEXPECTED_FINISH_REASON"
    assert "length" in str(exc_info.value)
    assert [m.role for m in agent.messages] == ["user", "assistant"]


def test_tool_calls_without_calls_is_unexpected():
    provider = ScriptedProvider([_result(finish_reason="tool_calls", tool_calls=None)])
    with pytest.raises(AgentError) as exc_info:
        Agent(provider, _registry(get_weather)).run("hi")
    assert exc_info.value.code == "UNEXPECTED_FINISH_REASON"


def test_no_choices():
    provider = ScriptedProvider([ChatResult(provider="fake", model="gpt-4o", choices=[])])
    with pytest.raises(AgentError) as exc_info:
        Agent(provider, _registry()).run("hi")
    assert exc_info.value.code == "NO_RESPONSE"


@pytest.mark.parametrize("arguments", ["{not json", "[1, 2]"])
def test_malformed_tool_arguments(arguments):
    provider = ScriptedProvider([_weather_call(arguments=arguments)])
    agent = Agent(provider, _registry(get_weather))
    with pytest.raises(AgentError) as exc_info:
        agent.run("hi")
    assert exc_info.value.code == "INVALID_TOOL_ARGUMENTS"
    assert [m.role for m in agent.messages] == ["user", "assistant"]


def test_tool_error_propagates_unchanged_and_notifies():
    provider = ScriptedProvider([_weather_call(name="unknown_tool")])
    recorder = RecordingCallback()
    with pytest.raises(ToolError) as exc_info:
        Agent(provider, _registry(get_weather)).run("hi", callbacks=[recorder])

    kind, context = recorder.events[-1]
    assert kind == "error"
    assert context["exception"] is exc_info.value
    assert context["error"] == str(exc_info.value)


def test_callback_events_in_order():
    provider = ScriptedProvider([_weather_call(), _result("done")])
    recorder = RecordingCallback()
    Agent(provider, _registry(get_weather), model="gpt-4o-mini").run("hi", callbacks=[recorder])

    assert [kind for kind, _ in recorder.events] == [
        "run_start",
        "generation_start",
        "generation_end",
        "tool_call_start",
        "tool_call_end",
        "generation_start",
        "generation_end",
        "run_end",
    ]
    events = dict(recorder.events)
    assert events["run_start"] == {"model": "gpt-4o-mini", "input": "hi", "has_output_type": False}
    assert events["tool_call_end"] == {
        "tool_name": "get_weather",
        "arguments": {"city": "Paris"},
        "result": {"city": "Paris", "temperature": 21},
        "tool_call_id": "call_1",
    }
    assert events["run_end"] == {"output": "done", "total_iterations": 2}


def test_callback_failures_are_swallowed():
    provider = ScriptedProvider([_weather_call(), _result("done")])
    recorder = RecordingCallback()
    agent = Agent(provider, _registry(get_weather))
    assert agent.run("hi", callbacks=[BrokenCallback(), recorder]) == "done"
    assert recorder.events[-1][0] == "run_end"


def test_message_sequence_input_adopted():
    provider = ScriptedProvider([_result("hello again")])
    history = [
        {"role": "system", "content": "Be brief."},
        ChatMessage(role="user", content="hello"),
    ]
    agent = Agent(provider, _registry())
    agent.run(history)

    assert len(history) == 2
    assert [m.role for m in provider.requests[0].messages] == ["system", "user"]
    assert provider.requests[0].messages[0].content == "Be brief."


def test_each_run_starts_fresh():
    provider = ScriptedProvider([_result("one"), _result("two")])
    agent = Agent(provider, _registry())
    agent.run("first")
    agent.run("second")
    assert [m.content for m in agent.messages] == ["second", "two"]


def test_dataclass_tool_result_serialized():
    provider = ScriptedProvider([_weather_call(name="weather_report"), _result("ok")])
    agent = Agent(provider, _registry(weather_report))
    agent.run("hi")
    assert json.loads(agent.messages[2].content) == {"city": "Paris", "temperature": 18}


def test_null_final_content_with_output_type():
    provider = ScriptedProvider([_result(None)])
    with pytest.raises(AgentError) as exc_info:
        Agent(provider, _registry(), output_type=Report).run("hi")
    assert exc_info.value.code == "OUTPUT_EMPTY"


@tool("grid_lookup", "Return values keyed by coordinates")
def grid_lookup(params: WeatherParams) -> dict:
    return {(1, 2): params.city}


def test_unencodable_tool_result_raises_tool_error():
    provider = ScriptedProvider([_weather_call(name="grid_lookup"), _result("never")])
    recorder = RecordingCallback()
    agent = Agent(provider, _registry(grid_lookup))
    with pytest.raises(ToolError) as exc_info:
        agent.run("hi", callbacks=[recorder])

    assert exc_info.value.code == "TOOL_RESULT_ERROR"
    assert "grid_lookup" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, TypeError)
    assert [m.role for m in agent.messages] == ["user", "assistant"]
    assert recorder.events[-1][0] == "error"
    assert len(provider.requests) == 1
