from dataclasses import dataclass

from agent_kit.agents.builder import AgentBuilder, create_agent
from agent_kit.config.settings import settings
from agent_kit.domain.models import ChatChoice, ChatMessage, ChatResult
from agent_kit.tools import tool


@dataclass
class EchoParams:
    text: str


@dataclass
class Answer:
    text: str


@tool("echo", "Echo text")
def echo(params: EchoParams) -> str:
    return params.text


@tool("shout", "Shout text")
def shout(params: EchoParams) -> str:
    return params.text.upper()


class FakeProvider:
    name = "fake"

    def __init__(self):
        self.requests = []

    def chat(self, req):
        self.requests.append(req)
        msg = ChatMessage(role="assistant", content='{"text": "hi"}')
        return ChatResult(provider="fake", model=req.model, choices=[ChatChoice(index=0, message=msg, finish_reason="stop")])


def test_builder_configures_agent():
    provider = FakeProvider()
    agent = (
        AgentBuilder(provider)
        .with_model("gpt-4o-mini")
        .with_tool(echo)
        .with_tools([shout])
        .with_output(Answer)
        .with_strict_output()
        .build()
    )
    assert agent.model == "gpt-4o-mini"
    assert agent.output_type is Answer
    assert "echo" in agent.registry and "shout" in agent.registry

    assert agent.run("hi") == Answer(text="hi")
    req = provider.requests[0]
    assert req.model == "gpt-4o-mini"
    assert req.response_format["json_schema"]["strict"] is True
    assert [t["function"]["name"] for t in req.tools] == ["echo", "shout"]


def test_create_agent_defaults():
    agent = create_agent(FakeProvider(), tools=[echo])
    assert agent.model == settings.default_model
    assert agent.output_type is None
    assert len(agent.registry) == 1


def test_create_agent_without_client(monkeypatch):
    provider = FakeProvider()
    monkeypatch.setattr("agent_kit.agents.builder.create_provider", lambda: provider)
    agent = create_agent(output=Answer, model="deepseek-chat")
    assert agent.run("hi") == Answer(text="hi")
    assert provider.requests[0].model == "deepseek-chat"
