import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict

from langgraph.graph import END, StateGraph

from backoffice.errors import SubmissionError
from backoffice.paths import sanitize
from backoffice.state import SubmissionState
from backoffice.validators import validate_document

if TYPE_CHECKING:
    from backoffice.entities import EntitySchema

logger = logging.getLogger(__name__)

Persist = Callable[[Dict[str, Any]], Awaitable[Any]]


def build_submit_graph(schema: "EntitySchema", persist: Persist):
    def validate(state: SubmissionState) -> Dict[str, Any]:
        result = validate_document(state.document, schema)
        if not result.is_valid:
            return {
                "status": "invalid",
                "errors": result.errors,
                "warnings": result.warnings,
                "message": "Please fix the validation errors before submitting.",
            }
        return {"payload": sanitize(state.document), "warnings": result.warnings}

    def route(state: SubmissionState) -> str:
        return "invalid" if state.status == "invalid" else "persist"

    async def save(state: SubmissionState) -> Dict[str, Any]:
        payload = state.payload if state.payload is not None else state.document
        try:
            await persist(payload)
        except SubmissionError as exc:
            return {"status": "failed", "message": exc.message, "errors": exc.field_errors}
        except Exception as exc:
            logger.exception("%s submission failed", schema.label)
            return {"status": "failed", "message": str(exc) or f"Failed to save {schema.label.lower()}"}
        logger.info("%s %s persisted", schema.label, state.mode)
        return {"status": "saved"}

    builder = StateGraph(SubmissionState)
    builder.add_node("validate", validate)
    builder.add_node("persist", save)

    builder.set_entry_point("validate")
    builder.add_conditional_edges("validate", route, {"invalid": END, "persist": "persist"})
    builder.add_edge("persist", END)

    return builder.compile()


async def run_submission(graph, state: SubmissionState) -> SubmissionState:
    result = await graph.ainvoke(state)
    if not isinstance(result, SubmissionState):
        result = SubmissionState.model_validate(result)
    return result
