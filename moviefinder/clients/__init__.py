"""
MovieFinder — LLM Client (LangChain + vLLM)

Factory + Adapter pattern: wraps LangChain's ChatOpenAI for the
generative search source.

Design patterns used:
  - Factory: create_llm() builds configured ChatOpenAI instances
  - Adapter: chat_completion() adapts LangChain to our dict-based messages
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from moviefinder.config import settings

logger = logging.getLogger(__name__)

# ── LLM Factory ──────────────────────────────────────────


def create_llm(
    *,
    temperature: float = 0.2,
    max_tokens: int = 2048,
    top_p: float = 0.9,
) -> ChatOpenAI:
    """
    Factory: create a ChatOpenAI instance configured for the vLLM server.
    Any OpenAI-compatible endpoint works.
    """
    return ChatOpenAI(
        model=settings.vllm_model,
        openai_api_key=settings.vllm_api_key,
        openai_api_base=settings.vllm_base_url,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        max_retries=0,
        extra_body={
            "chat_template_kwargs": {"enable_thinking": False},
        },
        timeout=120,
    )


# ── Message conversion helper ─────────────────────────────

def _to_langchain_messages(messages: List[Dict[str, str]]) -> list:
    """Convert our dict-based messages to LangChain message objects."""
    lc_msgs = []
    for msg in messages:
        role = msg["role"]
        content = msg["content"]
        if role == "system":
            lc_msgs.append(SystemMessage(content=content))
        elif role == "assistant":
            lc_msgs.append(AIMessage(content=content))
        else:
            lc_msgs.append(HumanMessage(content=content))
    return lc_msgs


# ── Chat completion ───────────────────────────────────────


async def chat_completion(
    messages: List[Dict[str, str]],
    *,
    temperature: float = 0.2,
    max_tokens: int = 2048,
    top_p: float = 0.9,
    json_schema: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Send a chat completion request and return the text content.

    When ``json_schema`` is given the server is asked to constrain its
    output to that schema (OpenAI ``response_format`` / vLLM guided JSON).
    """
    llm = create_llm(temperature=temperature, max_tokens=max_tokens, top_p=top_p)

    if json_schema is not None:
        llm = llm.bind(
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "movies", "schema": json_schema},
            }
        )

    logger.debug(
        "LLM request: model=%s tokens=%d temp=%.1f schema=%s",
        settings.vllm_model, max_tokens, temperature, json_schema is not None,
    )

    response = await llm.ainvoke(_to_langchain_messages(messages))
    content = _strip_thinking(str(response.content))

    logger.info("LLM response: %d chars, first 100: %s", len(content), repr(content[:100]))
    return content


# ── Utility ───────────────────────────────────────────────


def _strip_thinking(text: str) -> str:
    """Remove <think>...</think> blocks from the response."""
    text = re.sub(r'<think>.*?</think>\s*', '', text, flags=re.DOTALL)
    text = re.sub(r'<think>.*', '', text, flags=re.DOTALL)
    return text.strip()


# ── Health check ──────────────────────────────────────────

# LangChain does not expose /models, so query it with httpx directly
_health_client: Optional[httpx.AsyncClient] = None


async def _get_health_client() -> httpx.AsyncClient:
    global _health_client
    if _health_client is None or _health_client.is_closed:
        _health_client = httpx.AsyncClient(
            base_url=settings.vllm_base_url,
            timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
        )
    return _health_client


async def check_llm_health() -> Dict[str, Any]:
    """Return model info from the LLM server."""
    client = await _get_health_client()
    resp = await client.get("/models")
    resp.raise_for_status()
    return resp.json()


async def close_client() -> None:
    """Clean up any open HTTP connections."""
    global _health_client
    if _health_client and not _health_client.is_closed:
        await _health_client.aclose()
        _health_client = None
