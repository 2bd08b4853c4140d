import logging
import uuid
from datetime import datetime

import pandas as pd

import grading
import supabase_handler
import workflow
from grading import GradingError
from rubric_config import RUBRIC_TEMPLATES
from supabase_handler import get_supabase_client
from workflow import WorkflowError

logger = logging.getLogger(__name__)

# Created on first use so importing this module never needs secrets
sb = None

DOMAIN_ERRORS = (WorkflowError, GradingError)

DEFAULT_SETTINGS = {
    "enable_overall_grading": False,
    "allow_student_registration": True,
    "require_report_approval": True,
    "enable_post_defense_submission": False,
    "early_internship_goal_hours": 700,
}


def _db():
    global sb
    if sb is None:
        sb = get_supabase_client()
        if sb is None:
            raise RuntimeError("Database connection failed. Please check Secrets.")
    return sb


def _fetch(table, order=None, desc=False, **filters):
    """Rows of `table` matching column=value filters, as a list of dicts."""
    query = _db().table(table).select("*")
    for column, value in filters.items():
        if value is not None:
            query = query.eq(column, value)
    if order:
        query = query.order(order, desc=desc)
    return query.execute().data or []


def _fetch_one(table, row_id):
    if row_id is None:
        return None
    rows = _fetch(table, id=row_id)
    return rows[0] if rows else None


def _update(table, row_id, updates):
    res = _db().table(table).update(updates).eq("id", row_id).execute()
    # An empty result usually means a row-level security policy blocked it
    if hasattr(res, "data") and not res.data:
        raise RuntimeError(f"No {table} row was updated (missing row or row-level security policy).")
    return res.data[0]


def _require(row, label):
    if row is None:
        raise WorkflowError(f"{label} not found.")
    return row


# ===========================
# SETTINGS
# ===========================

def get_settings():
    settings = dict(DEFAULT_SETTINGS)
    try:
        for row in _fetch("system_settings"):
            settings[row["key"]] = row["value"]
    except Exception:
        logger.exception("Could not load settings, using defaults")
    return settings


def update_setting(key, value, changed_by="Admin"):
    try:
        if key not in DEFAULT_SETTINGS:
            raise WorkflowError(f"Unknown setting '{key}'.")
        old = get_settings().get(key)
        _db().table("system_settings").upsert({"key": key, "value": value}, on_conflict="key").execute()
        log_audit("settings", key, old, value, changed_by)
        return True, "Setting saved."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Saving setting %s failed", key)
        return False, str(e)


# ===========================
# STUDENT & SUPERVISOR FUNCTIONS
# ===========================

def get_students():
    try:
        return pd.DataFrame(_fetch("students", order="student_id"))
    except Exception:
        logger.exception("Error fetching students")
        return pd.DataFrame()


def add_student(student_id, first_name, last_name, email="", major=""):
    try:
        if not student_id or not first_name:
            raise WorkflowError("Student ID and first name are required.")
        if _fetch("students", student_id=student_id):
            raise WorkflowError(f"Student {student_id} already exists.")
        data = {"student_id": student_id, "first_name": first_name, "last_name": last_name,
                "email": email, "major": major}
        _db().table("students").insert(data).execute()
        return True, "Student added successfully."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding student %s failed", student_id)
        return False, str(e)


def delete_student(student_doc_id):
    try:
        if _fetch("defense_registrations", student_doc_id=student_doc_id):
            raise WorkflowError("Remove the student's registrations first.")
        _db().table("students").delete().eq("id", student_doc_id).execute()
        return True, "Student deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting student failed")
        return False, str(e)


def get_supervisors():
    try:
        return pd.DataFrame(_fetch("supervisors", order="name"))
    except Exception:
        logger.exception("Error fetching supervisors")
        return pd.DataFrame()


def add_supervisor(name, email="", department=""):
    try:
        if not name:
            raise WorkflowError("Supervisor name is required.")
        _db().table("supervisors").insert({"name": name, "email": email, "department": department}).execute()
        return True, "Supervisor added."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding supervisor failed")
        return False, str(e)


def delete_supervisor(supervisor_id):
    try:
        _db().table("supervisors").delete().eq("id", supervisor_id).execute()
        return True, "Supervisor deleted."
    except Exception as e:
        logger.exception("Deleting supervisor failed")
        return False, str(e)


# Helpers for dropdowns
def get_student_options():
    """Returns a dict { 'ID - Name': student row id }"""
    df = get_students()
    if df.empty:
        return {}
    labels = df["student_id"].astype(str) + " - " + df["first_name"].fillna("") + " " + df["last_name"].fillna("")
    return dict(zip(labels.str.strip(), df["id"]))


def get_supervisor_options():
    """Returns a dict { 'Name': supervisor id }"""
    df = get_supervisors()
    if df.empty:
        return {}
    return dict(zip(df["name"], df["id"]))


# ===========================
# COMPANY FUNCTIONS
# ===========================

def get_companies():
    try:
        return pd.DataFrame(_fetch("companies", order="name"))
    except Exception:
        logger.exception("Error fetching companies")
        return pd.DataFrame()


def add_company(name, address="", contact_name="", contact_phone="", contact_email=""):
    try:
        data = workflow.new_company(name, address, contact_name, contact_phone, contact_email)
        if _fetch("companies", name=data["name"]):
            raise WorkflowError(f"{data['name']} is already registered.")
        _db().table("companies").insert(data).execute()
        return True, "Company added."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding company failed")
        return False, str(e)


def delete_company(company_id):
    try:
        in_use = [s["name"] for s in _fetch("defense_sessions") if company_id in (s.get("company_ids") or [])]
        if in_use:
            raise WorkflowError(f"Remove the company from {', '.join(in_use)} first.")
        _db().table("companies").delete().eq("id", company_id).execute()
        return True, "Company deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting company failed")
        return False, str(e)


def get_company_options():
    """Returns a dict { 'Company Name': company id }"""
    df = get_companies()
    if df.empty:
        return {}
    return dict(zip(df["name"], df["id"]))


def get_session_companies(session_id):
    try:
        session = _fetch_one("defense_sessions", session_id)
        if not session:
            return []
        ids = session.get("company_ids") or []
        companies = {c["id"]: c for c in _fetch("companies")}
        return [companies[cid] for cid in ids if cid in companies]
    except Exception:
        logger.exception("Error fetching companies of session %s", session_id)
        return []


def update_session_companies(session_id, add=(), remove=(), changed_by="Admin"):
    try:
        session = _require(get_session(session_id), "Session")
        updates = workflow.session_companies_update(session, add, remove)
        _update("defense_sessions", session_id, updates)
        log_audit(f"session:{session['name']}", "company_ids", len(session.get("company_ids") or []),
                  len(updates["company_ids"]), changed_by)
        return True, f"{len(updates['company_ids'])} company(ies) offered in this session."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Updating session companies failed")
        return False, str(e)


# ===========================
# RUBRIC FUNCTIONS
# ===========================

def get_rubrics():
    try:
        return _fetch("rubrics", order="name")
    except Exception:
        logger.exception("Error fetching rubrics")
        return []


def get_rubric(rubric_id):
    if not rubric_id:
        return None
    try:
        return _fetch_one("rubrics", rubric_id)
    except Exception:
        logger.exception("Error fetching rubric %s", rubric_id)
        return None


def _text(value):
    # data_editor leaves NaN in empty cells
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _clean_criteria(criteria):
    cleaned = []
    seen = set()
    for i, c in enumerate(criteria, start=1):
        name = _text(c.get("name"))
        if not name:
            raise WorkflowError(f"Criterion {i} needs a name.")
        try:
            max_score = float(c.get("max_score"))
        except (TypeError, ValueError):
            raise WorkflowError(f"Max score of '{name}' is not a number.")
        if pd.isna(max_score) or max_score <= 0:
            raise WorkflowError(f"Max score of '{name}' must be positive.")
        cid = _text(c.get("id")) or uuid.uuid4().hex
        if cid in seen:
            raise WorkflowError(f"Duplicate criterion id '{cid}'.")
        seen.add(cid)
        cleaned.append({
            "id": cid,
            "name": name,
            "description": _text(c.get("description")),
            "max_score": max_score,
            "plo": _text(c.get("plo")),
            "pi": _text(c.get("pi")),
            "clo": _text(c.get("clo")),
        })
    if not cleaned:
        raise WorkflowError("A rubric needs at least one criterion.")
    return cleaned


def save_rubric(name, description, criteria, rubric_id=None):
    try:
        if not name:
            raise WorkflowError("Rubric name is required.")
        data = {"name": name, "description": description or "", "criteria": _clean_criteria(criteria)}
        if rubric_id:
            _update("rubrics", rubric_id, data)
            return True, "Rubric updated."
        _db().table("rubrics").insert(data).execute()
        return True, "Rubric saved."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Saving rubric %s failed", name)
        return False, str(e)


def delete_rubric(rubric_id):
    try:
        if _fetch("evaluations", rubric_id=rubric_id):
            raise WorkflowError("This rubric already has evaluations.")
        _db().table("rubrics").delete().eq("id", rubric_id).execute()
        return True, "Rubric deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting rubric failed")
        return False, str(e)


def seed_default_rubrics():
    """Inserts the built-in rubric templates that are not in the table yet."""
    try:
        existing = {r["name"] for r in get_rubrics()}
        added = 0
        for name, template in RUBRIC_TEMPLATES.items():
            if name in existing:
                continue
            criteria = [dict(c, description=c.get("desc", "")) for c in template["criteria"]]
            ok, msg = save_rubric(name, template["description"], criteria)
            if not ok:
                return False, msg
            added += 1
        return True, f"Added {added} default rubric(s)."
    except Exception as e:
        logger.exception("Seeding rubrics failed")
        return False, str(e)


# ===========================
# SESSION FUNCTIONS
# ===========================

def get_sessions():
    try:
        return _fetch("defense_sessions", order="start_date", desc=True)
    except Exception:
        logger.exception("Error fetching sessions")
        return []


def get_session(session_id):
    try:
        return _fetch_one("defense_sessions", session_id)
    except Exception:
        logger.exception("Error fetching session %s", session_id)
        return None


def create_session(changed_by="Admin", **fields):
    try:
        data = workflow.new_session(**fields)
        res = _db().table("defense_sessions").insert(data).execute()
        logger.info("Created session %s", data["name"])
        log_audit("session", "created", "-", data["name"], changed_by)
        return True, res.data[0]["id"] if res.data else "Session created."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Creating session failed")
        return False, str(e)


def copy_session(session_id, changed_by="Admin"):
    try:
        session = _require(get_session(session_id), "Session")
        data = workflow.copy_session(session)
        _db().table("defense_sessions").insert(data).execute()
        log_audit("session", "copied", session["name"], data["name"], changed_by)
        return True, f"Created '{data['name']}'."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Copying session failed")
        return False, str(e)


def update_session_status(session_id, status, changed_by="Admin"):
    try:
        session = _require(get_session(session_id), "Session")
        _update("defense_sessions", session_id, workflow.change_session_status(session, status))
        log_audit(f"session:{session['name']}", "status", session.get("status"), status, changed_by)
        return True, f"Session is now {status}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Updating session status failed")
        return False, str(e)


def update_session(session_id, updates, changed_by="Admin"):
    """Edits dates, links, rubric ids and council weights of a session."""
    try:
        session = _require(get_session(session_id), "Session")
        updates = dict(updates)
        if "graduation_council_weight" in updates or "internship_council_weight" in updates:
            updates.update(workflow.weight_update(
                updates.get("graduation_council_weight", session.get("graduation_council_weight")),
                updates.get("internship_council_weight", session.get("internship_council_weight")),
            ))
        date_keys = ("start_date", "registration_deadline", "expected_report_date")
        if any(key in updates for key in date_keys):
            merged = {key: updates.get(key, session.get(key)) for key in date_keys}
            updates.update(workflow.date_update(merged["start_date"], merged["registration_deadline"],
                                                merged["expected_report_date"]))
        _update("defense_sessions", session_id, updates)
        log_audit(f"session:{session['name']}", "settings", "-", ", ".join(sorted(updates)), changed_by)
        return True, "Session updated."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Updating session failed")
        return False, str(e)


def delete_session(session_id, changed_by="Admin"):
    try:
        if _fetch("defense_registrations", session_id=session_id):
            raise WorkflowError("Move or delete the session's registrations first.")
        db = _db()
        db.table("council_members").delete().eq("session_id", session_id).execute()
        db.table("subcommittees").delete().eq("session_id", session_id).execute()
        db.table("defense_sessions").delete().eq("id", session_id).execute()
        log_audit("session", "deleted", session_id, "-", changed_by)
        return True, "Session deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting session failed")
        return False, str(e)


# ===========================
# COUNCIL & SUBCOMMITTEE FUNCTIONS
# ===========================

def _supervisor_name(supervisor_id):
    row = _require(_fetch_one("supervisors", supervisor_id), "Supervisor")
    return row["name"]


def get_council_members(session_id):
    try:
        return _fetch("council_members", session_id=session_id)
    except Exception:
        logger.exception("Error fetching council")
        return []


def add_council_member(session_id, supervisor_id, role):
    try:
        workflow.check_member(get_council_members(session_id), supervisor_id, role, workflow.COUNCIL_ROLES)
        data = {"session_id": session_id, "supervisor_id": supervisor_id,
                "name": _supervisor_name(supervisor_id), "role": role}
        _db().table("council_members").insert(data).execute()
        return True, f"{data['name']} added as {role}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding council member failed")
        return False, str(e)


def remove_council_member(member_id):
    try:
        _db().table("council_members").delete().eq("id", member_id).execute()
        return True, "Member removed."
    except Exception as e:
        logger.exception("Removing council member failed")
        return False, str(e)


def get_subcommittees(session_id):
    try:
        return _fetch("subcommittees", order="name", session_id=session_id)
    except Exception:
        logger.exception("Error fetching subcommittees")
        return []


def create_subcommittee(session_id, name):
    try:
        if not name:
            raise WorkflowError("Subcommittee name is required.")
        if any(sc["name"] == name for sc in get_subcommittees(session_id)):
            raise WorkflowError(f"Subcommittee '{name}' already exists.")
        _db().table("subcommittees").insert({"session_id": session_id, "name": name, "members": []}).execute()
        return True, f"Subcommittee '{name}' created."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Creating subcommittee failed")
        return False, str(e)


def delete_subcommittee(subcommittee_id):
    """Deletes the subcommittee and un-assigns its students."""
    try:
        db = _db()
        db.table("defense_registrations").update({"subcommittee_id": None}).eq("subcommittee_id", subcommittee_id).execute()
        db.table("subcommittees").delete().eq("id", subcommittee_id).execute()
        return True, "Subcommittee deleted."
    except Exception as e:
        logger.exception("Deleting subcommittee failed")
        return False, str(e)


def add_subcommittee_member(subcommittee_id, supervisor_id, role):
    try:
        sc = _require(_fetch_one("subcommittees", subcommittee_id), "Subcommittee")
        members = list(sc.get("members") or [])
        workflow.check_member(members, supervisor_id, role, workflow.SUBCOMMITTEE_ROLES)
        members.append({"supervisor_id": supervisor_id, "name": _supervisor_name(supervisor_id), "role": role})
        _update("subcommittees", subcommittee_id, {"members": members})
        return True, "Member added."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding subcommittee member failed")
        return False, str(e)


def remove_subcommittee_member(subcommittee_id, supervisor_id):
    try:
        sc = _require(_fetch_one("subcommittees", subcommittee_id), "Subcommittee")
        members = [m for m in sc.get("members") or [] if m.get("supervisor_id") != supervisor_id]
        _update("subcommittees", subcommittee_id, {"members": members})
        return True, "Member removed."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Removing subcommittee member failed")
        return False, str(e)


def assign_subcommittee(registration_ids, subcommittee_id, changed_by="Admin"):
    """Manual assignment; subcommittee_id None un-assigns."""
    try:
        for reg_id in registration_ids:
            _update("defense_registrations", reg_id, {"subcommittee_id": subcommittee_id})
        log_audit("registrations", "subcommittee", "-", subcommittee_id or "Unassigned", changed_by)
        return True, f"Updated {len(registration_ids)} registration(s)."
    except Exception as e:
        logger.exception("Assigning subcommittee failed")
        return False, str(e)


def auto_assign_subcommittees(session_id, changed_by="Admin"):
    try:
        subcommittees = get_subcommittees(session_id)
        assignment = workflow.round_robin_assignment(
            get_registrations(session_id=session_id), [sc["id"] for sc in subcommittees]
        )
        for reg_id, sc_id in assignment.items():
            _update("defense_registrations", reg_id, {"subcommittee_id": sc_id})
        logger.info("Auto-assigned %d registrations in session %s", len(assignment), session_id)
        log_audit("registrations", "subcommittee", "-", f"auto ({len(assignment)})", changed_by)
        return True, f"Assigned {len(assignment)} student(s)."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Auto-assignment failed")
        return False, str(e)


# ===========================
# REGISTRATION FUNCTIONS
# ===========================

def get_registrations(session_id=None, student_doc_id=None, supervisor_id=None):
    try:
        return _fetch("defense_registrations", order="student_id", session_id=session_id,
                      student_doc_id=student_doc_id, supervisor_id=supervisor_id)
    except Exception:
        logger.exception("Error fetching registrations")
        return []


def get_registration(registration_id):
    try:
        return _fetch_one("defense_registrations", registration_id)
    except Exception:
        logger.exception("Error fetching registration %s", registration_id)
        return None


def add_registrations(session_id, student_doc_ids):
    """Registers students to a session, skipping those already in it."""
    try:
        registered = {r["student_doc_id"] for r in get_registrations(session_id=session_id)}
        records = []
        for doc_id in student_doc_ids:
            if doc_id in registered:
                continue
            student = _require(_fetch_one("students", doc_id), "Student")
            records.append(workflow.new_registration(session_id, student))
        if records:
            _db().table("defense_registrations").insert(records).execute()
        return True, f"Registered {len(records)} student(s)."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Adding registrations failed")
        return False, str(e)


def update_report_status(registration_ids, report_type, status, note="", exemption=None, changed_by="Admin"):
    try:
        updates = workflow.report_status_update(report_type, status, note, exemption)
        for reg_id in registration_ids:
            reg = _require(get_registration(reg_id), "Registration")
            _update("defense_registrations", reg_id, updates)
            log_audit(reg.get("student_id"), f"{report_type} status",
                      reg.get(f"{report_type}_status", "-"), status, changed_by)
        return True, f"Updated {len(registration_ids)} registration(s)."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Updating report status failed")
        return False, str(e)


def move_registrations(registration_ids, target_session_id, changed_by="Admin"):
    try:
        regs = [_require(get_registration(r), "Registration") for r in registration_ids]
        _require(get_session(target_session_id), "Target session")
        updates = workflow.check_move(regs, target_session_id)
        for reg in regs:
            _update("defense_registrations", reg["id"], updates)
            log_audit(reg.get("student_id"), "session", reg["session_id"], target_session_id, changed_by)
        return True, f"Moved {len(regs)} registration(s)."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Moving registrations failed")
        return False, str(e)


def assign_internship_supervisor(registration_id, supervisor_id):
    try:
        _update("defense_registrations", registration_id, {"internship_supervisor_id": supervisor_id})
        return True, "Internship supervisor assigned."
    except Exception as e:
        logger.exception("Assigning internship supervisor failed")
        return False, str(e)


def delete_registration(registration_id, changed_by="Admin"):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        if _fetch("evaluations", registration_id=registration_id):
            raise WorkflowError("This registration already has evaluations.")
        _db().table("defense_registrations").delete().eq("id", registration_id).execute()
        if reg.get("report_link"):
            supabase_handler.remove_report(_db(), reg["session_id"], reg.get("student_id"))
        log_audit("registration", "deleted", reg.get("student_id"), "-", changed_by)
        return True, "Registration deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting registration failed")
        return False, str(e)


# ===========================
# TOPIC FUNCTIONS
# ===========================

def get_topics(session_id=None, supervisor_id=None, status=None):
    try:
        return _fetch("project_topics", order="created_at", desc=True, session_id=session_id,
                      supervisor_id=supervisor_id, status=status)
    except Exception:
        logger.exception("Error fetching topics")
        return []


def propose_topic(session_id, supervisor_id, title, summary, objectives="", expected_results="", max_students=1):
    try:
        data = workflow.new_topic(session_id, supervisor_id, _supervisor_name(supervisor_id), title, summary,
                                  objectives, expected_results, max_students)
        _db().table("project_topics").insert(data).execute()
        return True, "Topic submitted for approval."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Proposing topic failed")
        return False, str(e)


def review_topic(topic_id, action, reason="", changed_by="Admin"):
    try:
        topic = _require(_fetch_one("project_topics", topic_id), "Topic")
        updates = workflow.review_topic(topic, action, reason)
        _update("project_topics", topic_id, updates)
        log_audit(f"topic:{topic['title']}", "status", topic["status"], updates["status"], changed_by)
        return True, f"Topic {updates['status']}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reviewing topic failed")
        return False, str(e)


def delete_topic(topic_id):
    try:
        topic = _require(_fetch_one("project_topics", topic_id), "Topic")
        if not workflow.can_delete_topic(topic):
            raise WorkflowError("Approved or taken topics cannot be deleted.")
        _db().table("project_topics").delete().eq("id", topic_id).execute()
        return True, "Topic deleted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Deleting topic failed")
        return False, str(e)


def register_for_topic(registration_id, topic_id):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        topic = _require(_fetch_one("project_topics", topic_id), "Topic")
        allowed = get_settings()["allow_student_registration"]
        _update("defense_registrations", registration_id, workflow.register_topic(reg, topic, allowed))
        return True, "Registration sent to the supervisor."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Topic registration failed")
        return False, str(e)


def confirm_topic_registration(registration_id, action, changed_by="Supervisor"):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        topics = [t for t in get_topics(session_id=reg["session_id"], supervisor_id=reg.get("supervisor_id"))
                  if t["title"] == reg.get("project_title")]
        topic = _require(topics[0] if topics else None, "Topic")
        reg_update, topic_update = workflow.confirm_topic_registration(
            reg, topic, action, get_registrations(session_id=reg["session_id"])
        )
        _update("defense_registrations", registration_id, reg_update)
        if topic_update:
            _update("project_topics", topic["id"], topic_update)
        log_audit(reg.get("student_id"), "topic registration", "pending",
                  reg_update["project_registration_status"], changed_by)
        return True, f"Registration {reg_update['project_registration_status']}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Confirming topic registration failed")
        return False, str(e)


# ===========================
# SUBMISSION FUNCTIONS
# ===========================

def submit_proposal(registration_id, summary, objectives, expected_results="", proposal_link=""):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        _update("defense_registrations", registration_id,
                workflow.submit_proposal(reg, summary, objectives, expected_results, proposal_link))
        return True, "Proposal submitted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Proposal submission failed")
        return False, str(e)


def upload_report(registration_id, file_bytes):
    """Stores the report PDF in the reports bucket and returns (ok, url or message)."""
    reg = get_registration(registration_id)
    if reg is None:
        return False, "Registration not found."
    try:
        client = _db()
    except RuntimeError as e:
        return False, str(e)
    return supabase_handler.upload_report(client, reg["session_id"], reg.get("student_id"), file_bytes)


def submit_report(registration_id, report_link):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        updates = workflow.submit_report(reg, report_link, get_settings()["require_report_approval"])
        _update("defense_registrations", registration_id, updates)
        return True, "Report approved." if updates["report_status"] == "approved" else "Report submitted for approval."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Report submission failed")
        return False, str(e)


def submit_post_defense_report(registration_id, report_link):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        session = _require(get_session(reg["session_id"]), "Session")
        enabled = get_settings()["enable_post_defense_submission"]
        _update("defense_registrations", registration_id,
                workflow.submit_post_defense_report(reg, session, report_link, enabled))
        return True, "Post-defense report saved."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Post-defense submission failed")
        return False, str(e)


def review_submission(registration_id, field, action, changed_by="Supervisor"):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        updates = workflow.review_submission(reg, field, action)
        _update("defense_registrations", registration_id, updates)
        log_audit(reg.get("student_id"), field, reg.get(field), updates[field], changed_by)
        return True, f"{field.split('_')[0].title()} {updates[field]}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reviewing submission failed")
        return False, str(e)


def submit_internship_registration(registration_id, company_name="", company_address="", company_supervisor_name="",
                                   company_supervisor_phone="", acceptance_letter_link="", company_id=None):
    """Self-arranged company details, or `company_id` of a company offered in the session."""
    try:
        reg = _require(get_registration(registration_id), "Registration")
        if company_id:
            session = _require(get_session(reg["session_id"]), "Session")
            company = _require(_fetch_one("companies", company_id), "Company")
            details = workflow.company_registration_fields(session, company)
        else:
            details = {"company_name": company_name, "company_address": company_address,
                       "company_supervisor_name": company_supervisor_name,
                       "company_supervisor_phone": company_supervisor_phone}
        updates = workflow.submit_internship_registration(reg, acceptance_letter_link=acceptance_letter_link,
                                                          **details)
        _update("defense_registrations", registration_id, updates)
        return True, "Internship registration submitted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Internship registration failed")
        return False, str(e)


def review_internship_registration(registration_id, action, reason="", changed_by="Admin"):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        updates = workflow.review_internship_registration(reg, action, reason)
        _update("defense_registrations", registration_id, updates)
        log_audit(reg.get("student_id"), "internship registration", "pending",
                  updates["internship_registration_status"], changed_by)
        return True, f"Internship registration {updates['internship_registration_status']}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reviewing internship registration failed")
        return False, str(e)


# ===========================
# PROGRESS FUNCTIONS
# ===========================

def get_progress_reports(registration_id=None, supervisor_id=None):
    try:
        return _fetch("progress_reports", order="week_number", registration_id=registration_id,
                      supervisor_id=supervisor_id)
    except Exception:
        logger.exception("Error fetching progress reports")
        return []


def submit_progress_report(registration_id, work_done, next_week_plan, today=None):
    try:
        reg = _require(get_registration(registration_id), "Registration")
        session = _require(get_session(reg["session_id"]), "Session")
        data = workflow.new_progress_report(reg, session, get_progress_reports(registration_id=registration_id),
                                            work_done, next_week_plan, today)
        _db().table("progress_reports").insert(data).execute()
        return True, f"Week {data['week_number']} report submitted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Progress report submission failed")
        return False, str(e)


def review_progress_report(report_id, status, comments=""):
    try:
        _update("progress_reports", report_id, workflow.review_progress_report(status, comments))
        return True, f"Report {status}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reviewing progress report failed")
        return False, str(e)


def get_early_internships(student_doc_id=None, supervisor_id=None):
    try:
        return _fetch("early_internships", order="start_date", desc=True,
                      student_doc_id=student_doc_id, supervisor_id=supervisor_id)
    except Exception:
        logger.exception("Error fetching early internships")
        return []


def register_early_internship(student_doc_id, department, supervisor_id, start_date, end_date=None, proof_link=""):
    try:
        student = _require(_fetch_one("students", student_doc_id), "Student")
        if any(e["status"] in ("pending_approval", "ongoing") for e in get_early_internships(student_doc_id=student_doc_id)):
            raise WorkflowError("You already have an active early internship.")
        data = workflow.new_early_internship(student, department, supervisor_id, _supervisor_name(supervisor_id),
                                             start_date, end_date, proof_link)
        _db().table("early_internships").insert(data).execute()
        return True, "Early internship registered."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Early internship registration failed")
        return False, str(e)


def update_early_internship_status(internship_id, status, note="", changed_by="Supervisor"):
    try:
        internship = _require(_fetch_one("early_internships", internship_id), "Early internship")
        _update("early_internships", internship_id, workflow.change_early_internship_status(internship, status, note))
        log_audit(internship.get("student_id"), "early internship", internship["status"], status, changed_by)
        return True, f"Early internship {status}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Updating early internship failed")
        return False, str(e)


def get_early_internship_reports(internship_id):
    try:
        return _fetch("early_internship_reports", order="week_number", early_internship_id=internship_id)
    except Exception:
        logger.exception("Error fetching hours reports")
        return []


def submit_hours_report(internship_id, week, hours, work_done="", by_supervisor=False):
    try:
        internship = _require(_fetch_one("early_internships", internship_id), "Early internship")
        data = workflow.new_hours_report(internship, get_early_internship_reports(internship_id),
                                         week, hours, work_done, by_supervisor)
        _db().table("early_internship_reports").insert(data).execute()
        return True, f"Week {data['week_number']} saved."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Hours report failed")
        return False, str(e)


def review_hours_report(report_id, status, hours=None, comments=""):
    try:
        _update("early_internship_reports", report_id, workflow.review_hours_report(status, hours, comments))
        return True, f"Week {status}."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reviewing hours report failed")
        return False, str(e)


# ===========================
# EVALUATION FUNCTIONS
# ===========================

def get_evaluations(session_id=None, registration_id=None, evaluator_id=None):
    try:
        return _fetch("evaluations", session_id=session_id, registration_id=registration_id,
                      evaluator_id=evaluator_id)
    except Exception:
        logger.exception("Error fetching evaluations")
        return []


def _existing_evaluation(record):
    rows = (_db().table("evaluations").select("*")
            .eq("registration_id", record["registration_id"])
            .eq("evaluator_id", record["evaluator_id"])
            .eq("rubric_id", record["rubric_id"])
            .eq("evaluation_type", record["evaluation_type"])
            .execute().data)
    return rows[0] if rows else None


def _save_evaluation(record):
    """One evaluation per evaluator, rubric and registration: update it if present."""
    existing = _existing_evaluation(record)
    if existing:
        _update("evaluations", existing["id"], record)
    else:
        _db().table("evaluations").insert(record).execute()


def _check_council_member(registration, evaluator_id):
    sc = _fetch_one("subcommittees", registration.get("subcommittee_id"))
    if not sc or not any(m.get("supervisor_id") == evaluator_id for m in sc.get("members") or []):
        raise WorkflowError(f"You are not on {registration.get('student_name')}'s subcommittee.")


def save_evaluations(registration_ids, rubric_id, evaluator_id, evaluation_type, scores=None, overall=None,
                     comments="", council=True):
    """
    Grades every registration in `registration_ids` (a project group) with the same scores.
    Council grading checks the evaluator sits on each student's subcommittee.
    """
    try:
        rubric = _require(get_rubric(rubric_id), "Rubric")
        if overall is not None and not get_settings()["enable_overall_grading"]:
            raise WorkflowError("Overall grading is disabled.")
        # every record is checked before any is written
        records = []
        for reg_id in registration_ids:
            reg = _require(get_registration(reg_id), "Registration")
            if council:
                _check_council_member(reg, evaluator_id)
            records.append(grading.build_evaluation(rubric, reg["session_id"], reg_id, evaluator_id, evaluation_type,
                                                    scores=scores, overall=overall, comments=comments))
        for record in records:
            _save_evaluation(record)
        logger.info("Evaluator %s graded %d registration(s)", evaluator_id, len(registration_ids))
        return True, f"Saved {len(registration_ids)} evaluation(s)."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Saving evaluations failed")
        return False, str(e)


def mark_absent(registration_id, rubric_id, evaluator_id, evaluation_type, changed_by="Council"):
    try:
        rubric = _require(get_rubric(rubric_id), "Rubric")
        reg = _require(get_registration(registration_id), "Registration")
        _check_council_member(reg, evaluator_id)
        _save_evaluation(grading.absent_evaluation(rubric, reg["session_id"], registration_id, evaluator_id,
                                                   evaluation_type))
        log_audit(reg.get("student_id"), "attendance", "present", "absent", changed_by)
        return True, f"{reg.get('student_name')} marked absent."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Marking absence failed")
        return False, str(e)


def revert_absence(registration_id, rubric_id, evaluator_id, evaluation_type, changed_by="Council"):
    """Deletes the absent evaluation so the student can be graded again."""
    try:
        existing = _existing_evaluation({"registration_id": registration_id, "rubric_id": rubric_id,
                                         "evaluator_id": evaluator_id, "evaluation_type": evaluation_type})
        if not existing or existing.get("attendance") != "absent":
            raise WorkflowError("The student is not marked absent.")
        _db().table("evaluations").delete().eq("id", existing["id"]).execute()
        log_audit(registration_id, "attendance", "absent", "reverted", changed_by)
        return True, "Absence reverted."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Reverting absence failed")
        return False, str(e)


def copy_evaluation(registration_id, rubric_id, evaluation_type, source_evaluator_id, destination_evaluator_id):
    """Copies one council member's evaluation to another member of the same subcommittee."""
    try:
        reg = _require(get_registration(registration_id), "Registration")
        _check_council_member(reg, source_evaluator_id)
        _check_council_member(reg, destination_evaluator_id)
        source = _existing_evaluation({"registration_id": registration_id, "rubric_id": rubric_id,
                                       "evaluator_id": source_evaluator_id, "evaluation_type": evaluation_type})
        _save_evaluation(grading.copy_evaluation(source, destination_evaluator_id))
        return True, "Evaluation copied."
    except DOMAIN_ERRORS as e:
        return False, str(e)
    except Exception as e:
        logger.exception("Copying evaluation failed")
        return False, str(e)


# ===========================
# REPORT FUNCTIONS
# ===========================

def grade_report(session_id, report_type="graduation"):
    try:
        return grading.build_grade_report(
            get_session(session_id), get_registrations(session_id=session_id),
            get_evaluations(session_id=session_id), get_subcommittees(session_id), report_type,
        )
    except GradingError:
        raise
    except Exception:
        logger.exception("Building grade report failed")
        return pd.DataFrame()


def outcome_report(session_id, report_type="graduation"):
    session = get_session(session_id)
    if not session:
        return pd.DataFrame()
    if report_type == "graduation":
        keys = ("council_graduation_rubric_id", "supervisor_graduation_rubric_id")
    else:
        keys = ("council_internship_rubric_id", "company_internship_rubric_id")
    rubrics = [get_rubric(session.get(k)) for k in keys]
    registrations = [r for r in get_registrations(session_id=session_id)
                     if r.get(f"{report_type}_status") == "reporting"]
    return grading.build_outcome_report(registrations, get_evaluations(session_id=session_id), rubrics)


# ===========================
# AUDIT & LOG FUNCTIONS
# ===========================

def get_audit_logs(limit=100):
    try:
        res = _db().table("audit_logs").select("*").order("timestamp", desc=True).limit(limit).execute()
        return pd.DataFrame(res.data) if res.data else pd.DataFrame()
    except Exception:
        logger.exception("Error fetching audit logs")
        return pd.DataFrame()


def log_audit(entity, field, old_val, new_val, changed_by):
    try:
        data = {
            "entity": str(entity),
            "field_changed": field,
            "old_value": str(old_val),
            "new_value": str(new_val),
            "changed_by": changed_by,
            "timestamp": datetime.now().isoformat()
        }
        _db().table("audit_logs").insert(data).execute()
    except Exception:
        logger.exception("Could not write audit log for %s", entity)
