from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from backoffice.engine import FormSession

logger = logging.getLogger(__name__)


class CloseChoice(str, Enum):
    CONTINUE = "continue"
    SAVE_DRAFT = "save_draft"
    DISCARD = "discard"
    CLOSE = "close"


class ClosePrompt(BaseModel):
    title: str
    message: str
    choices: List[CloseChoice]
    has_unsaved_changes: bool


class CloseGate:
    def __init__(self, session: FormSession, on_close: Optional[Callable[[], None]] = None):
        self.session = session
        self.on_close = on_close
        self.prompt: Optional[ClosePrompt] = None

    def request_close(self) -> Optional[ClosePrompt]:
        session = self.session
        if session.state.is_submitting:
            logger.debug("Close ignored while %s submission is in flight", session.schema.name)
            return None

        label = session.schema.label
        dirty = session.has_unsaved_changes
        if session.state.mode == "add" and dirty:
            prompt = ClosePrompt(
                title="Unsaved Changes",
                message=f"You have unsaved changes to this {label.lower()}. Save them as a draft before closing?",
                choices=[CloseChoice.CONTINUE, CloseChoice.SAVE_DRAFT, CloseChoice.DISCARD],
                has_unsaved_changes=True,
            )
        elif session.state.mode == "add":
            prompt = ClosePrompt(
                title=f"Close {label} Form",
                message="Are you sure you want to close this form?",
                choices=[CloseChoice.CONTINUE, CloseChoice.CLOSE],
                has_unsaved_changes=False,
            )
        else:
            prompt = ClosePrompt(
                title=f"Close {label} Editor",
                message=(
                    "You have unsaved changes that will be lost. Are you sure you want to close?"
                    if dirty
                    else "Are you sure you want to close the editor?"
                ),
                choices=[CloseChoice.CONTINUE, CloseChoice.CLOSE],
                has_unsaved_changes=dirty,
            )
        self.prompt = prompt
        return prompt

    def resolve(self, choice: CloseChoice | str) -> bool:
        if self.prompt is None:
            raise ValueError("No close confirmation is pending")
        choice = CloseChoice(choice)
        if choice not in self.prompt.choices:
            raise ValueError(f"Choice {choice.value!r} is not available here")

        session = self.session
        if session.state.is_submitting:
            logger.debug("Close choice held while %s submission is in flight", session.schema.name)
            return False
        label = session.schema.label
        self.prompt = None

        if choice is CloseChoice.CONTINUE:
            return False

        if choice is CloseChoice.SAVE_DRAFT:
            if session.save_draft():
                session.notifier.success(f"{label} draft saved successfully")
            else:
                session.notifier.error(f"Failed to save {label.lower()} draft")
                return False
        elif choice is CloseChoice.DISCARD:
            session.reset_form()
            session.notifier.info(f"{label} changes discarded")
        elif session.state.mode == "add":
            # a clean add-mode close must not leave a stale draft behind
            session.clear_draft()

        self._close()
        return True

    def _close(self) -> None:
        self.session.close()
        logger.info("%s form closed", self.session.schema.name)
        if self.on_close is not None:
            self.on_close()
