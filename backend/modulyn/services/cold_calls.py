from datetime import datetime
from io import StringIO
import csv

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from modulyn.core.errors import AppError
from modulyn.core.logging import get_logger
from modulyn.models.call import ColdCall
from modulyn.models.lead import Lead, LeadStatus
from modulyn.models.user import User
from modulyn.services.assignment import assign_best_agent

logger = get_logger(__name__)

_EMAIL = TypeAdapter(EmailStr)

EXPORT_COLUMNS = [
    "id",
    "name",
    "email",
    "phone",
    "agent_id",
    "source",
    "status",
    "priority",
    "comments",
    "date",
    "is_converted",
    "converted_by",
    "converted_at",
    "created_at",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def cold_calls_csv(db: Session, tenant_id: int) -> str:
    rows = db.query(ColdCall).filter(ColdCall.tenant_id == tenant_id).order_by(ColdCall.id).all()
    out = StringIO()
    writer = csv.writer(out)
    writer.writerow(EXPORT_COLUMNS)
    for row in rows:
        writer.writerow([_cell(getattr(row, column)) for column in EXPORT_COLUMNS])
    return out.getvalue()


def parse_cold_calls_csv(text: str, agent_ids: set[int]) -> tuple[list[dict], list[dict]]:
    """Split an uploaded sheet into insertable rows and per-row errors.

    Rows need a name and a phone. An `agent_id`, when present, must be one
    of `agent_ids`, and an email must be valid.
    """
    parsed: list[dict] = []
    errors: list[dict] = []
    try:
        reader = csv.DictReader(StringIO(text))
        for record in reader:
            line = reader.line_num
            record = {k.strip(): (v or "").strip() for k, v in record.items() if k is not None}
            if not record.get("name") or not record.get("phone"):
                errors.append({"line": line, "error": "Missing name or phone"})
                continue

            agent_id = None
            if record.get("agent_id"):
                try:
                    agent_id = int(record["agent_id"])
                except ValueError:
                    agent_id = -1
                if agent_id not in agent_ids:
                    errors.append({"line": line, "error": f"Unknown agent_id {record['agent_id']}"})
                    continue

            if record.get("email"):
                try:
                    _EMAIL.validate_python(record["email"])
                except ValidationError:
                    errors.append({"line": line, "error": f"Invalid email {record['email']}"})
                    continue

            parsed.append(
                {
                    "name": record["name"],
                    "email": record.get("email") or None,
                    "phone": record["phone"],
                    "agent_id": agent_id,
                    "source": record.get("source") or None,
                    "status": record.get("status") or "pending",
                    "priority": record.get("priority") or None,
                    "comments": record.get("comments") or None,
                    "date": record.get("date") or None,
                }
            )
    except csv.Error as exc:
        raise AppError(f"CSV parse error: {exc}", 400)
    return parsed, errors


def convert_to_lead(db: Session, cold_call: ColdCall, converted_by: User) -> Lead:
    """Create a lead from a cold call and mark the call converted. Commits."""
    if cold_call.is_converted:
        raise AppError("Cold call already converted", 400)
    if not cold_call.email:
        raise AppError("Add an email to the cold call before converting it", 400)

    first, _, last = cold_call.name.strip().partition(" ")
    lead = Lead(
        tenant_id=cold_call.tenant_id,
        first_name=first,
        last_name=last.strip(),
        email=cold_call.email,
        phone=cold_call.phone,
        source=cold_call.source,
        status=LeadStatus.new,
        assigned_to=cold_call.agent_id,
        notes=cold_call.comments,
    )
    db.add(lead)
    db.flush()
    if lead.assigned_to is None:
        lead.assigned_to = assign_best_agent(db, lead)

    cold_call.is_converted = True
    cold_call.status = "converted"
    cold_call.converted_by = converted_by.id
    cold_call.converted_at = datetime.utcnow()
    db.commit()
    db.refresh(lead)
    logger.info("Cold call %s converted to lead %s by user %s", cold_call.id, lead.id, converted_by.id)
    return lead
