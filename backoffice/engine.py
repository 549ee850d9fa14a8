from __future__ import annotations

import copy
import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi.concurrency import run_in_threadpool

from backoffice.debounce import make_debounced_save
from backoffice.entities import EntitySchema
from backoffice.graph import build_submit_graph, run_submission
from backoffice.notifications import ToastSink
from backoffice.paths import get_path, is_blank, merge_template, set_path
from backoffice.state import DraftPrompt, Mode, PriceBinding, SessionState, StepStatus, SubmissionState
from backoffice.steps import can_submit, progress, step_status, step_statuses
from backoffice.storage import DraftStore
from backoffice.validators import ValidationResult, validate_document

logger = logging.getLogger(__name__)

Submitter = Callable[[dict[str, Any]], Awaitable[Any]]


def format_price(amount: float, currency: str = "AED") -> str:
    if amount >= 1_000_000_000:
        return f"{currency} {amount / 1_000_000_000:.1f}B"
    if amount >= 1_000_000:
        return f"{currency} {amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"{currency} {amount / 1_000:.1f}K"
    return f"{currency} {int(round(amount))}"


class FormSession:
    """Working state of one entity entry form."""

    def __init__(
        self,
        schema: EntitySchema,
        store: DraftStore,
        submitter: Submitter,
        *,
        notifier: Optional[ToastSink] = None,
        autosave: Any = None,
    ):
        self.schema = schema
        self.store = store
        self.notifier = notifier or ToastSink()
        self.autosave = autosave if autosave is not None else make_debounced_save(store, schema.draft.debounce_ms)
        self.state = SessionState(entity=schema.name)
        self._graph = build_submit_graph(schema, submitter)

    # lifecycle

    def initialize(self, mode: Mode, existing: dict[str, Any] | None = None) -> DraftPrompt | None:
        if mode not in ("add", "edit"):
            raise ValueError(f"Unknown form mode: {mode}")
        self.autosave.cancel()
        state = SessionState(entity=self.schema.name, mode=mode, initialized=True)

        if mode == "edit":
            if existing is None:
                raise ValueError("Edit mode requires an existing entity")
            document = merge_template(self.schema.template, existing)
            state.document = document
            state.baseline_document = copy.deepcopy(document)
            state.original_document = copy.deepcopy(document)
        else:
            state.document = self.schema.empty_document()
            state.baseline_document = self.schema.empty_document()
            if self.store.has_meaningful_draft():
                state.draft_prompt = DraftPrompt(saved_at=self.store.timestamp_of(), age=self.store.describe_age())
                logger.info("Found %s draft, waiting for restore decision", self.schema.name)

        self.state = state
        return state.draft_prompt

    def restore_draft(self) -> bool:
        state = self._require_open()
        if state.draft_prompt is None:
            raise RuntimeError("No draft decision is pending")

        record = self.store.load()
        if record is not None:
            document = merge_template(self.schema.template, record.document)
            state.document = document
            state.baseline_document = copy.deepcopy(document)
            state.draft_restored = True
            logger.info("%s draft restored", self.schema.label)
        else:
            self._seed_empty(state)
        state.draft_prompt = None
        return record is not None

    def discard_draft(self) -> None:
        state = self._require_open()
        if state.draft_prompt is None:
            raise RuntimeError("No draft decision is pending")
        self.clear_draft()
        self._seed_empty(state)
        state.draft_prompt = None
        logger.info("%s draft discarded, starting fresh", self.schema.label)

    def reset_form(self) -> None:
        state = self._require_open()
        self._seed_empty(state)
        state.errors = {}
        state.current_step = 0
        if state.mode == "add":
            self.clear_draft()

    def close(self) -> None:
        self.autosave.cancel()
        self.state.closed = True

    # editing

    def set_field(self, path: str, value: Any) -> None:
        state = self._require_open()
        set_path(state.document, path, copy.deepcopy(value))
        state.errors.pop(path, None)

        for binding in self.schema.price_bindings:
            if path in (binding.numeric, binding.currency):
                self._refresh_price(binding)

        self._maybe_autosave()

    def _refresh_price(self, binding: PriceBinding) -> None:
        document = self.state.document
        amount = get_path(document, binding.numeric)
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return
        currency = get_path(document, binding.currency) if binding.currency else None
        if is_blank(currency):
            currency = binding.default_currency
            if binding.currency:
                set_path(document, binding.currency, currency)
        set_path(document, binding.display, format_price(amount, currency))
        self.state.errors.pop(binding.display, None)

    def _maybe_autosave(self) -> None:
        state = self.state
        if state.mode != "add" or state.draft_prompt is not None or state.closed:
            return
        if not self.has_unsaved_changes:
            return
        if not self.schema.draft.is_meaningful(state.document):
            return
        self.autosave(state.document)

    # navigation

    @property
    def step_count(self) -> int:
        return len(self.schema.steps)

    def go_to_step(self, index: int) -> int:
        last = max(self.step_count - 1, 0)
        self.state.current_step = max(0, min(int(index), last))
        return self.state.current_step

    def next_step(self) -> int:
        return self.go_to_step(self.state.current_step + 1)

    def prev_step(self) -> int:
        return self.go_to_step(self.state.current_step - 1)

    # derived state

    @property
    def has_unsaved_changes(self) -> bool:
        state = self.state
        if not state.initialized:
            return False
        if state.mode == "edit":
            return state.document != state.original_document
        return state.document != state.baseline_document or self.schema.draft.is_meaningful(state.document)

    def validate(self) -> ValidationResult:
        return validate_document(self.state.document, self.schema)

    def step_status(self, index: int) -> StepStatus:
        return step_status(self.schema, index, self.state.document)

    def can_submit(self) -> bool:
        return can_submit(self.schema, self.state.document)

    # persistence

    def save_draft(self) -> bool:
        if self.state.mode != "add":
            return False
        self.autosave.cancel()
        return self.store.save(self.state.document)

    def clear_draft(self) -> None:
        self.autosave.cancel()
        self.store.clear()

    async def submit(self) -> bool:
        state = self._require_open()
        if state.is_submitting:
            logger.debug("Ignoring %s submit while another is in flight", self.schema.name)
            return False

        result = validate_document(state.document, self.schema)
        if not result.is_valid:
            self._reject(result.errors, "Please fix the validation errors before submitting.")
            return False

        payload = copy.deepcopy(state.document)
        state.is_submitting = True
        try:
            outcome = await run_submission(
                self._graph,
                SubmissionState(entity=self.schema.name, mode=state.mode, document=payload),
            )
        except Exception:
            logger.exception("%s submission pipeline crashed", self.schema.label)
            self.notifier.error(f"Failed to save {self.schema.label.lower()}")
            return False
        finally:
            state.is_submitting = False

        if outcome.status == "invalid":
            self._reject(outcome.errors, outcome.message or "Please fix the validation errors before submitting.")
            return False

        if outcome.status == "failed":
            state.errors.update(outcome.errors)
            self.notifier.error(outcome.message or f"Failed to save {self.schema.label.lower()}")
            return False

        if state.mode == "add":
            await run_in_threadpool(self.clear_draft)
            logger.info("Cleared %s draft after successful submission", self.schema.name)
        state.baseline_document = copy.deepcopy(payload)
        if state.mode == "edit":
            state.original_document = copy.deepcopy(payload)
        state.errors = {}

        title = get_path(outcome.payload or payload, self.schema.title_field) or ""
        verb = "created" if state.mode == "add" else "updated"
        self.notifier.success(f'{self.schema.label} "{title}" {verb} successfully!')
        return True

    def snapshot(self) -> dict[str, Any]:
        state = self.state
        result = validate_document(state.document, self.schema)
        statuses = step_statuses(self.schema, state.document, result=result)
        return {
            "entity": self.schema.name,
            "mode": state.mode,
            "document": state.document,
            "current_step": state.current_step,
            "steps": [
                {"id": step.id, "title": step.title, "status": status}
                for step, status in zip(self.schema.steps, statuses)
            ],
            "errors": state.errors,
            "warnings": result.warnings,
            "has_unsaved_changes": self.has_unsaved_changes,
            "is_submitting": state.is_submitting,
            "can_submit": can_submit(self.schema, state.document, result=result),
            "progress": progress(self.schema, state.document, result=result),
            "draft_prompt": state.draft_prompt.model_dump(mode="json") if state.draft_prompt else None,
            "draft_restored": state.draft_restored,
            "closed": state.closed,
        }

    def _reject(self, errors: dict[str, str], message: str) -> None:
        self.state.errors = dict(errors)
        self.notifier.error(message)
        logger.info("%s validation failed: %s", self.schema.label, sorted(errors))

    def _seed_empty(self, state: SessionState) -> None:
        self.autosave.cancel()
        state.document = self.schema.empty_document()
        state.baseline_document = self.schema.empty_document()
        state.draft_restored = False

    def _require_open(self) -> SessionState:
        if not self.state.initialized:
            raise RuntimeError("Session is not initialized")
        if self.state.closed:
            raise RuntimeError("Session is closed")
        return self.state
