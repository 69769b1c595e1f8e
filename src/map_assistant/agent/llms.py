import os
from collections.abc import Sequence
from typing import Protocol

from dotenv import load_dotenv
from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

# Load environment variables from env file
load_dotenv()

LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "ollama")
# Get model name from environment variable, default to llama3.2
MODEL_NAME = os.environ.get("OLLAMA_AGENT_MODEL", "llama3.2")
OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")

MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "human": HumanMessage,
    "assistant": AIMessage,
    "ai": AIMessage,
}


class TextCompletion(Protocol):
    """Stateless completion: the full conversation is sent on every call."""

    async def complete(self, turns: Sequence[dict[str, str]]) -> str: ...


def to_messages(turns: Sequence[dict[str, str]]) -> list[BaseMessage]:
    return [MESSAGE_TYPES[turn["role"]](content=turn["content"]) for turn in turns]


class ChatModelCompletion:
    """Adapts a langchain chat model to ``TextCompletion``."""

    def __init__(self, model: BaseChatModel):
        self.model = model

    async def complete(self, turns: Sequence[dict[str, str]]) -> str:
        response = await self.model.ainvoke(to_messages(turns))
        content = response.content
        if isinstance(content, list):
            content = "".join(
                part if isinstance(part, str) else part.get("text", "") for part in content
            )
        return content.strip()


def create_chat_model() -> BaseChatModel:
    kwargs = {"base_url": OLLAMA_BASE_URL} if LLM_PROVIDER == "ollama" else {}
    return init_chat_model(MODEL_NAME, model_provider=LLM_PROVIDER, **kwargs)


def create_completion() -> ChatModelCompletion:
    return ChatModelCompletion(create_chat_model())
