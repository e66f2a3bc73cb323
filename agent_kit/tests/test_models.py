import json

from agent_kit.domain.models import ChatMessage
from agent_kit.tools.definitions import ToolCall


def test_from_mapping_plain_message():
    msg = ChatMessage.from_mapping({"role": "system", "content": "Be brief."})
    assert msg == ChatMessage(role="system", content="Be brief.")


def test_from_mapping_tool_calls():
    existing = ToolCall(id="x", name="echo", arguments="{}")
    msg = ChatMessage.from_mapping(
        {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {"id": "c1", "type": "function", "function": {"name": "echo", "arguments": '{"text": "a"}'}},
                existing,
            ],
        }
    )
    assert msg.tool_calls == [ToolCall(id="c1", name="echo", arguments='{"text": "a"}'), existing]


def test_from_mapping_tool_result():
    msg = ChatMessage.from_mapping({"role": "tool", "content": "42", "tool_call_id": "c1"})
    assert msg.tool_call_id == "c1"
    assert msg.tool_calls is None


def test_from_mapping_normalizes_object_arguments():
    msg = ChatMessage.from_mapping(
        {
            "role": "assistant",
            "tool_calls": [
                {"id": "c1", "function": {"name": "calc", "arguments": {"a": 1, "city": "Zürich"}}},
                {"id": "c2", "function": {"name": "noop"}},
                {"id": "c3", "function": {"name": "noop", "arguments": ""}},
            ],
        }
    )
    args = [call.arguments for call in msg.tool_calls]
    assert args[0] == '{"a": 1, "city": "Zürich"}'
    assert json.loads(args[0]) == {"a": 1, "city": "Zürich"}
    assert args[1:] == ["{}", "{}"]
