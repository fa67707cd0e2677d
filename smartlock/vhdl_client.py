from __future__ import annotations

import re
from typing import Any, Dict, Optional, Protocol

import httpx

from smartlock.utils import logger


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"

_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n(.*?)\n?\s*```\s*$", re.DOTALL)


class GenerationError(RuntimeError):
    """Code generation failed (transport, HTTP status, or unusable response)."""


class CodeGenerator(Protocol):
    async def generate(self) -> str: ...


def build_prompt(secret_code: str, max_attempts: int, lockout_seconds: int) -> str:
    return (
        "Write synthesizable VHDL-2008 for an FPGA digital keypad lock.\n"
        f"- Secret code: {len(secret_code)} decimal digits, value \"{secret_code}\".\n"
        "- Inputs: clk, reset, key_valid, key_code (digits 0-9, CLEAR, ENTER).\n"
        "- States: LOCKED, ERROR, UNLOCKED, LOCKOUT as an enumerated FSM type.\n"
        f"- After {max_attempts} consecutive wrong codes enter LOCKOUT for "
        f"{lockout_seconds} seconds using a generic clock-frequency counter.\n"
        "- A wrong code shows ERROR for one second, then returns to LOCKED.\n"
        "- Outputs: unlocked, error, lockout, and a 4-digit display bus.\n"
        "Return one complete entity and architecture with comments. "
        "Return only the VHDL code."
    )


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding markdown code fence, if present."""
    m = _FENCE_RE.match(text or "")
    return (m.group(1) if m else (text or "")).strip()


class VHDLGenerator:
    """
    Gemini generateContent client that produces VHDL for the configured lock.

    - Stateless per call: a fresh httpx.AsyncClient is opened for each request.
    - Every failure surfaces as GenerationError with the cause chained.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        secret_code: str,
        max_attempts: int,
        lockout_seconds: int,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = float(timeout)
        self.prompt = build_prompt(secret_code, max_attempts, lockout_seconds)
        self._transport = transport

    # ----------------- internal helpers -----------------
    def _headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _payload(self) -> Dict[str, Any]:
        return {"contents": [{"parts": [{"text": self.prompt}]}]}

    @staticmethod
    def _extract_text(data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Response contained no candidates") from e
        if not isinstance(parts, list):
            raise GenerationError("Response candidate has no parts list")
        text = "".join(
            p["text"] for p in parts
            if isinstance(p, dict) and isinstance(p.get("text"), str)
        )
        text = strip_code_fences(text)
        if not text:
            raise GenerationError("Response candidate contained no text")
        return text

    # ----------------- public -----------------
    async def generate(self) -> str:
        """Request VHDL for the lock; returns the code text."""
        if not self.api_key:
            raise GenerationError("Gemini API key is not configured")

        logger.info("[VHDL] Requesting generation with model %s", self.model)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self._url(), headers=self._headers(), json=self._payload())
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise GenerationError(f"HTTP error {e.response.status_code} from generation service") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Request to generation service failed: {e}") from e
        except ValueError as e:
            raise GenerationError("Generation service returned invalid JSON") from e

        text = self._extract_text(data)
        logger.info("[VHDL] Generated %d characters", len(text))
        return text
