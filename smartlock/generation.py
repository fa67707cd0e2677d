"""
Caller-side tracking of the VHDL generate trigger.
States: idle -> loading -> success | error. Re-entry while loading is suppressed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from smartlock.utils import logger
from smartlock.vhdl_client import CodeGenerator


GENERATION_FAILED_MESSAGE = "Failed to generate VHDL code. Please check your API key and try again."


@dataclass
class GenerationSession:
    generator: CodeGenerator
    code: str = ""
    error: str = ""
    is_generating: bool = False

    @property
    def status(self) -> str:
        if self.is_generating:
            return "loading"
        if self.error:
            return "error"
        if self.code:
            return "success"
        return "idle"

    def view(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "is_generating": self.is_generating,
            "code": self.code,
            "error": self.error,
        }

    async def run(self) -> Dict[str, Any]:
        """Run one generation; never raises. Returns the resulting view."""
        if self.is_generating:
            logger.info("[VHDL] Generation already in progress; request ignored")
            return self.view()

        self.is_generating = True
        self.error = ""
        self.code = ""
        try:
            self.code = await self.generator.generate()
        except Exception:
            self.error = GENERATION_FAILED_MESSAGE
            logger.exception("[VHDL] Generation failed")
        finally:
            self.is_generating = False
        return self.view()
