import logging
from decimal import Decimal

from extensions import db
from models import AssessmentTool
from services.db_utils import transaction
from services.errors import ConflictError, ValidationError
from services.mark_aggregation import tool_weightage_total

logger = logging.getLogger(__name__)


def _clean_tool(raw):
    name = (raw.get("toolName") or "").strip()
    if not name:
        raise ValidationError("toolName is required for every tool")

    weightage = raw.get("weightage")
    max_marks = raw.get("maxMarks")
    if weightage is None or max_marks is None:
        raise ValidationError(f"weightage and maxMarks are required for tool '{name}'")
    try:
        weightage = float(weightage)
        max_marks = float(max_marks)
    except (TypeError, ValueError):
        raise ValidationError(f"weightage and maxMarks must be numbers for tool '{name}'")

    if weightage < 0:
        raise ValidationError(f"Weightage for tool '{name}' cannot be negative")
    if max_marks <= 0:
        raise ValidationError(f"maxMarks for tool '{name}' must be greater than 0")

    tool_id = raw.get("toolId")
    if tool_id is not None:
        try:
            tool_id = int(tool_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid toolId for tool '{name}'")

    return {
        "toolId": tool_id,
        "toolName": name,
        "weightage": weightage,
        "maxMarks": max_marks,
    }


def save_tool_set(co, tools, actor):
    """
    Replace the tool set of a CO in one go.

    Rejected before any write unless tool names are unique
    (case-insensitive) and the weightages sum to exactly 100. Existing tools
    missing from ``tools`` are deleted along with their recorded marks.
    """
    if not isinstance(tools, list):
        raise ValidationError("tools array is required")

    cleaned = [_clean_tool(t) for t in tools]

    names = [t["toolName"].lower() for t in cleaned]
    if len(set(names)) != len(names):
        raise ValidationError("Duplicate tool names not allowed in the same CO")

    if tool_weightage_total(cleaned) != Decimal("100"):
        raise ValidationError("Total tool weightage for this CO must equal 100%")

    existing = {t.tool_id: t for t in AssessmentTool.query.filter_by(co_id=co.co_id).all()}
    for t in cleaned:
        if t["toolId"] is not None and t["toolId"] not in existing:
            raise ValidationError(f"Tool {t['toolId']} does not belong to {co.label}")

    keep_ids = {t["toolId"] for t in cleaned if t["toolId"] is not None}

    with transaction():
        for tool_id, tool in existing.items():
            if tool_id not in keep_ids:
                db.session.delete(tool)
        # Renames may swap names between tools; free the names first
        for t in cleaned:
            if t["toolId"] is not None:
                existing[t["toolId"]].tool_name = f"__{t['toolId']}__"
        db.session.flush()

        saved = []
        for t in cleaned:
            if t["toolId"] is not None:
                tool = existing[t["toolId"]]
                tool.tool_name = t["toolName"]
                tool.weightage = t["weightage"]
                tool.max_marks = t["maxMarks"]
                tool.updated_by = actor
            else:
                tool = AssessmentTool(
                    co_id=co.co_id,
                    tool_name=t["toolName"],
                    weightage=t["weightage"],
                    max_marks=t["maxMarks"],
                    created_by=actor
                )
                db.session.add(tool)
            saved.append(tool)
        db.session.flush()

    logger.info("Saved %d tools for CO %s", len(saved), co.co_id)
    return saved


def _check_name_free(co_id, name, exclude_tool_id=None):
    q = AssessmentTool.query.filter(
        AssessmentTool.co_id == co_id,
        db.func.lower(AssessmentTool.tool_name) == name.lower()
    )
    if exclude_tool_id is not None:
        q = q.filter(AssessmentTool.tool_id != exclude_tool_id)
    if q.first():
        raise ConflictError(f"A tool named '{name}' already exists for this CO")


def create_tool(co, data, actor):
    t = _clean_tool(data)
    _check_name_free(co.co_id, t["toolName"])
    with transaction():
        tool = AssessmentTool(
            co_id=co.co_id,
            tool_name=t["toolName"],
            weightage=t["weightage"],
            max_marks=t["maxMarks"],
            created_by=actor
        )
        db.session.add(tool)
        db.session.flush()
    return tool


def update_tool(tool, data, actor):
    t = _clean_tool(data)
    _check_name_free(tool.co_id, t["toolName"], exclude_tool_id=tool.tool_id)
    with transaction():
        tool.tool_name = t["toolName"]
        tool.weightage = t["weightage"]
        tool.max_marks = t["maxMarks"]
        tool.updated_by = actor
    return tool


def delete_tool(tool):
    """Delete a tool; its recorded marks go with it."""
    tool_id = tool.tool_id
    with transaction():
        db.session.delete(tool)
    logger.info("Deleted tool %s", tool_id)


def serialize_tool(tool):
    return {
        "toolId": tool.tool_id,
        "coId": tool.co_id,
        "toolName": tool.tool_name,
        "weightage": tool.weightage,
        "maxMarks": tool.max_marks,
    }
