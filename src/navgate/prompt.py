# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""User-facing collaborators: local notification + override confirmation.

The gate only depends on the two protocols below; the console implementations
back the CLI.  The confirmation has no timeout: it waits for a choice.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, TextIO, runtime_checkable

logger = logging.getLogger(__name__)

WARNING_TITLE = "⚠️ Malicious URL Warning"
CANCEL_LABEL = "Cancel"
CONTINUE_LABEL = "Continue Anyway"


class OverrideChoice(StrEnum):
    """The two actions offered by the confirmation dialog."""

    CANCEL = "cancel"
    CONTINUE = "continue"


def format_probability(probability: float) -> str:
    """0.97 -> "97.0%" (one decimal place)."""
    return f"{probability * 100:.1f}%"


@dataclass(frozen=True, slots=True)
class MaliciousUrlWarning:
    """Everything the UI needs to warn about one blocked URL."""

    url: str
    confidence: str  # classifier label, shown verbatim
    probability: float

    title = WARNING_TITLE
    actions = (CANCEL_LABEL, CONTINUE_LABEL)

    @property
    def probability_text(self) -> str:
        return format_probability(self.probability)

    def notification_body(self) -> str:
        return (
            f'URL "{self.url}" has been detected as malicious '
            f"(Confidence: {self.confidence}, Probability: {self.probability_text})"
        )

    def dialog_message(self) -> str:
        return (
            f"This URL has been detected as malicious:\n\n{self.url}\n\n"
            f"Confidence: {self.confidence}\nProbability: {self.probability_text}\n\n"
            "Do you want to continue accessing it?"
        )


@runtime_checkable
class Notifier(Protocol):
    """Local (OS-level) notification sink."""

    async def notify(self, title: str, body: str) -> None: ...


@runtime_checkable
class OverridePrompt(Protocol):
    """Blocking "Cancel" / "Continue Anyway" confirmation."""

    async def confirm(self, warning: MaliciousUrlWarning) -> OverrideChoice: ...


# ---------------------------------------------------------------------------
# Console implementations (CLI)
# ---------------------------------------------------------------------------


class ConsoleNotifier:
    """Writes notifications to a text stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def notify(self, title: str, body: str) -> None:
        stream = self._stream or sys.stderr
        print(f"\n{title}\n{body}", file=stream, flush=True)


class ConsolePrompt:
    """Asks on the terminal; reads stdin in a worker thread.

    Prompts are serialized: a second blocked URL waits for the first answer.
    """

    _CONTINUE_ANSWERS = frozenset({"c", "continue", "continue anyway", "y", "yes"})
    _CANCEL_ANSWERS = frozenset({"", "n", "no", "cancel", "x"})

    def __init__(self, read_line: Callable[[str], str] = input, stream: TextIO | None = None) -> None:
        self._read_line = read_line
        self._stream = stream
        self._lock = asyncio.Lock()

    async def confirm(self, warning: MaliciousUrlWarning) -> OverrideChoice:
        async with self._lock:
            stream = self._stream or sys.stderr
            print(f"\n{warning.title}\n{warning.dialog_message()}", file=stream, flush=True)
            question = f"[{CANCEL_LABEL} = Enter / {CONTINUE_LABEL} = c] > "
            while True:
                try:
                    answer = await asyncio.to_thread(self._read_line, question)
                except EOFError:
                    logger.info("Prompt input closed, treating as cancel: %s", warning.url)
                    return OverrideChoice.CANCEL
                answer = answer.strip().lower()
                if answer in self._CONTINUE_ANSWERS:
                    return OverrideChoice.CONTINUE
                if answer in self._CANCEL_ANSWERS:
                    return OverrideChoice.CANCEL
                print(f"Please answer '{CANCEL_LABEL}' or '{CONTINUE_LABEL}'.", file=stream, flush=True)
