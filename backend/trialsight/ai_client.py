"""
Structured Generation Client - provider abstraction over the text-generation service.

Two call shapes:
    complete            - free-form text on the fast or deep-reasoning tier
    complete_structured - JSON validated against a pydantic shape, or GenerationError

plus `open_session()` for the deep tier's multi-turn chat.

Supports: Google GenAI (default), OpenAI, Anthropic. The tier's provider is
resolved once per call from backend.config; if its key is missing the call
goes to the first configured provider. Every call is bounded by a timeout and
transient transport failures are retried once after a short backoff. Nothing
is cached or batched.
"""

import asyncio
import json
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as SchemaValidationError

from backend.config import TIER_CONFIGS, get_ai_client, settings
from backend.trialsight.errors import GenerationError
from backend.trialsight.schemas import response_schema


M = TypeVar("M", bound=BaseModel)


class ModelTier(str, Enum):
    FAST = "fast"
    DEEP = "deep"


@dataclass
class GenerationRequest:
    """One call to the generation service."""
    tier: ModelTier
    provider: str
    model: str
    messages: List[Dict[str, str]]  # [{"role": "user" | "model", "text": ...}]
    system_prompt: str = ""
    response_schema: Optional[Dict[str, Any]] = None
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout: float = 60.0


Transport = Callable[[GenerationRequest], Optional[str]]


# Exception class names (across provider SDKs) that indicate a transient transport failure.
TRANSIENT_ERROR_NAMES = {
    "APIConnectionError", "APITimeoutError", "RateLimitError", "InternalServerError",
    "OverloadedError", "ServiceUnavailable", "DeadlineExceeded", "TooManyRequests",
    "ResourceExhausted",
}


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError, httpx.TransportError)):
        return True
    return type(exc).__name__ in TRANSIENT_ERROR_NAMES


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------

def _schema_instruction(request: GenerationRequest) -> str:
    """System prompt plus a JSON contract for providers without native schema support."""
    if not request.response_schema:
        return request.system_prompt
    contract = (
        "Respond with a single JSON object and nothing else. "
        f"It must match this schema:\n{json.dumps(request.response_schema, indent=2)}"
    )
    return f"{request.system_prompt}\n\n{contract}".strip()


def _call_google(client: Any, request: GenerationRequest) -> Optional[str]:
    gen_config: Dict[str, Any] = {
        "max_output_tokens": request.max_tokens,
        "temperature": request.temperature,
    }
    if request.response_schema:
        gen_config["response_mime_type"] = "application/json"
        gen_config["response_schema"] = request.response_schema

    model_kwargs: Dict[str, Any] = {}
    if request.system_prompt:
        model_kwargs["system_instruction"] = request.system_prompt

    model_obj = client.GenerativeModel(
        model_name=request.model,
        generation_config=gen_config,
        **model_kwargs,
    )
    contents = [{"role": m["role"], "parts": [m["text"]]} for m in request.messages]
    response = model_obj.generate_content(contents, request_options={"timeout": request.timeout})
    return getattr(response, "text", None)


def _call_openai(client: Any, request: GenerationRequest) -> Optional[str]:
    messages = []
    system_prompt = _schema_instruction(request)
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for m in request.messages:
        messages.append({
            "role": "assistant" if m["role"] == "model" else "user",
            "content": m["text"],
        })
    extra: Dict[str, Any] = {}
    if request.response_schema:
        extra["response_format"] = {"type": "json_object"}
    try:
        response = client.chat.completions.create(
            model=request.model, max_completion_tokens=request.max_tokens,
            temperature=request.temperature, messages=messages,
            timeout=request.timeout, **extra,
        )
    except Exception as e:
        if "max_completion_tokens" in str(e).lower():
            response = client.chat.completions.create(
                model=request.model, max_tokens=request.max_tokens,
                temperature=request.temperature, messages=messages,
                timeout=request.timeout, **extra,
            )
        else:
            raise
    choices = getattr(response, "choices", None) or []
    first = choices[0] if choices else None
    msg = getattr(first, "message", None) if first else None
    return getattr(msg, "content", None) if msg else None


def _call_anthropic(client: Any, request: GenerationRequest) -> Optional[str]:
    kwargs: Dict[str, Any] = {}
    system_prompt = _schema_instruction(request)
    if system_prompt:
        kwargs["system"] = system_prompt
    response = client.messages.create(
        model=request.model,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        messages=[
            {"role": "assistant" if m["role"] == "model" else "user", "content": m["text"]}
            for m in request.messages
        ],
        timeout=request.timeout,
        **kwargs,
    )
    content_list = getattr(response, "content", None) or []
    first_block = content_list[0] if content_list else None
    return getattr(first_block, "text", None) if first_block else None


def call_provider(request: GenerationRequest) -> Optional[str]:
    """Default transport: resolve the tier's provider and issue one blocking call."""
    provider, client, model = get_ai_client(request.provider, request.model)
    if provider != request.provider:
        request.provider, request.model = provider, model
    if provider == "google":
        return _call_google(client, request)
    elif provider == "anthropic":
        return _call_anthropic(client, request)
    else:  # openai
        return _call_openai(client, request)


# ---------------------------------------------------------------------------
# JSON decoding
# ---------------------------------------------------------------------------

def parse_json_payload(text: str) -> Any:
    """Decode a JSON object from a model response, tolerating code fences."""
    body = text.strip()
    if body.startswith("```"):
        body = body.split("\n", 1)[1] if "\n" in body else ""
        if body.rstrip().endswith("```"):
            body = body.rstrip()[:-3]
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        # Search the raw text: a one-line fence leaves nothing in `body`.
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                pass
    raise GenerationError("Response was not valid JSON")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class GenerationClient:
    """Async facade over a blocking transport."""

    def __init__(self, transport: Optional[Transport] = None,
                 timeout: Optional[float] = None,
                 retry_backoff: Optional[float] = None):
        self._transport = transport or call_provider
        self.timeout = settings.generation_timeout_seconds if timeout is None else timeout
        self.retry_backoff = (
            settings.generation_retry_backoff_seconds if retry_backoff is None else retry_backoff
        )

    def build_request(self, tier: ModelTier, messages: List[Dict[str, str]],
                      system_prompt: str = "",
                      schema: Optional[Dict[str, Any]] = None) -> GenerationRequest:
        config = TIER_CONFIGS[ModelTier(tier).value]
        return GenerationRequest(
            tier=ModelTier(tier),
            provider=config.ai_provider,
            model=config.model,
            messages=messages,
            system_prompt=system_prompt,
            response_schema=schema,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=self.timeout,
        )

    async def complete(self, prompt: str, tier: ModelTier = ModelTier.FAST,
                       system_prompt: str = "") -> str:
        """Unconstrained completion. May return an empty string."""
        request = self.build_request(tier, [{"role": "user", "text": prompt}], system_prompt)
        return await self.generate(request)

    async def complete_structured(self, prompt: str, schema: Type[M],
                                  tier: ModelTier = ModelTier.DEEP,
                                  system_prompt: str = "") -> M:
        """Completion guaranteed to satisfy `schema`, or GenerationError."""
        request = self.build_request(
            tier, [{"role": "user", "text": prompt}], system_prompt,
            schema=response_schema(schema),
        )
        text = await self.generate(request)
        if not text:
            raise GenerationError("No response from AI")
        payload = parse_json_payload(text)
        try:
            return schema.model_validate(payload)
        except SchemaValidationError as e:
            print(f"[ai_client] {schema.__name__} validation failed: {e.error_count()} error(s)")
            raise GenerationError(f"Response does not match {schema.__name__}") from e

    def open_session(self, system_instruction: str,
                     tier: ModelTier = ModelTier.DEEP) -> "ChatSession":
        return ChatSession(self, system_instruction, tier)

    async def generate(self, request: GenerationRequest) -> str:
        """Run one request with the timeout and the single transient retry."""
        for attempt in (1, 2):
            try:
                result = await asyncio.wait_for(self._invoke(request), timeout=self.timeout)
                return result or ""
            except GenerationError:
                raise
            except Exception as e:
                if attempt == 1 and is_transient(e):
                    print(f"[ai_client] Transient failure on {request.tier.value} tier "
                          f"({type(e).__name__}); retrying in {self.retry_backoff}s")
                    await asyncio.sleep(self.retry_backoff)
                    continue
                print(f"[ai_client] {request.provider}/{request.model} failed: {type(e).__name__}: {e}")
                if not is_transient(e):
                    traceback.print_exc()
                raise GenerationError(f"Generation failed: {e}") from e
        raise GenerationError("Generation failed")

    async def _invoke(self, request: GenerationRequest) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._transport, request)


@dataclass
class ChatSession:
    """
    Multi-turn conversation on one tier, seeded once with a system instruction.

    History holds only completed turns: a failed send leaves it unchanged.
    """
    client: GenerationClient
    system_instruction: str
    tier: ModelTier = ModelTier.DEEP
    history: List[Dict[str, str]] = field(default_factory=list)
    closed: bool = False

    async def send(self, text: str) -> str:
        if self.closed:
            raise GenerationError("Chat session is closed")
        turn = {"role": "user", "text": text}
        request = self.client.build_request(
            self.tier, self.history + [turn], self.system_instruction,
        )
        reply = await self.client.generate(request)
        self.history.extend([turn, {"role": "model", "text": reply}])
        return reply

    def close(self):
        self.closed = True
