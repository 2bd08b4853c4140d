"""
Status rules for sessions, registrations, topics, submissions and progress reports.

Functions here never touch the database: they check whether a transition is
allowed and return the field updates to write, raising WorkflowError when it
is not.
"""
from datetime import date, datetime, timedelta

SESSION_STATUSES = ("upcoming", "ongoing", "completed")
SESSION_TYPES = ("graduation", "internship", "combined")
REPORT_STATUSES = ("reporting", "exempted", "withdrawn", "not_reporting")
TOPIC_STATUSES = ("pending", "approved", "rejected", "taken")
SUBMISSION_STATUSES = ("not_submitted", "pending_approval", "approved", "rejected")
PROGRESS_STATUSES = ("pending_review", "approved", "rejected")
EARLY_INTERNSHIP_STATUSES = ("pending_approval", "ongoing", "completed", "rejected", "cancelled")
COUNCIL_ROLES = ("President", "Vice President", "Secretary", "Member")
SUBCOMMITTEE_ROLES = ("Head", "Secretary", "Commissioner")

DEFAULT_GRADUATION_COUNCIL_WEIGHT = 80
DEFAULT_INTERNSHIP_COUNCIL_WEIGHT = 50

EARLY_INTERNSHIP_TRANSITIONS = {
    "pending_approval": ("ongoing", "rejected"),
    "ongoing": ("completed", "cancelled"),
}

TOPIC_FIELDS = ("project_title", "summary", "objectives", "expected_results", "supervisor_id", "supervisor_name")


class WorkflowError(ValueError):
    pass


def _as_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


def iso_date(value):
    d = _as_date(value)
    return d.isoformat() if d else None


def _check_weight(value, label):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise WorkflowError(f"{label} must be a number.")
    if value < 0 or value > 100:
        raise WorkflowError(f"{label} must be between 0 and 100.")
    return value


# ===========================
# SESSIONS
# ===========================

def expected_report_date(start_date):
    """Second Saturday of the month three months after `start_date`."""
    start = _as_date(start_date)
    month_index = start.month - 1 + 3
    first = date(start.year + month_index // 12, month_index % 12 + 1, 1)
    days_to_saturday = (5 - first.weekday()) % 7
    return first + timedelta(days=days_to_saturday + 7)


def date_update(start_date, registration_deadline=None, report_date=None):
    """Session date fields; the report date defaults as for a new session."""
    if not start_date:
        raise WorkflowError("Start date is required.")
    report_date = _as_date(report_date) or expected_report_date(start_date)
    deadline = _as_date(registration_deadline)
    if deadline and deadline > report_date:
        raise WorkflowError("Registration deadline cannot be after the expected report date.")
    return {
        "start_date": iso_date(start_date),
        "registration_deadline": iso_date(deadline),
        "expected_report_date": iso_date(report_date),
    }


def new_session(name, session_type, start_date, registration_deadline, report_date=None,
                description="", group_link="", post_defense_submission_link="",
                rubric_ids=None, graduation_council_weight=DEFAULT_GRADUATION_COUNCIL_WEIGHT,
                internship_council_weight=DEFAULT_INTERNSHIP_COUNCIL_WEIGHT):
    if not name or not str(name).strip():
        raise WorkflowError("Session name is required.")
    if session_type not in SESSION_TYPES:
        raise WorkflowError(f"Unknown session type '{session_type}'.")
    dates = date_update(start_date, registration_deadline, report_date)

    rubric_ids = rubric_ids or {}
    return {
        "name": str(name).strip(),
        "session_type": session_type,
        **dates,
        "description": description or "",
        "group_link": group_link or "",
        "post_defense_submission_link": post_defense_submission_link or "",
        "council_graduation_rubric_id": rubric_ids.get("council_graduation") or None,
        "council_internship_rubric_id": rubric_ids.get("council_internship") or None,
        "supervisor_graduation_rubric_id": rubric_ids.get("supervisor_graduation") or None,
        "company_internship_rubric_id": rubric_ids.get("company_internship") or None,
        "graduation_council_weight": _check_weight(graduation_council_weight, "Graduation council weight"),
        "internship_council_weight": _check_weight(internship_council_weight, "Internship council weight"),
        "status": "upcoming",
    }


def copy_session(session):
    """A new upcoming session with the same rubrics and weights; dates must be set again."""
    copied = {k: v for k, v in session.items() if k not in ("id", "created_at")}
    copied.update({
        "name": f"{session.get('name', '')} (Copy)",
        "start_date": None,
        "registration_deadline": None,
        "expected_report_date": None,
        "status": "upcoming",
    })
    return copied


def change_session_status(session, new_status):
    if new_status not in SESSION_STATUSES:
        raise WorkflowError(f"Unknown session status '{new_status}'.")
    if session.get("status") == new_status:
        raise WorkflowError(f"Session is already {new_status}.")
    return {"status": new_status}


def weight_update(graduation_council_weight, internship_council_weight):
    return {
        "graduation_council_weight": _check_weight(graduation_council_weight, "Graduation council weight"),
        "internship_council_weight": _check_weight(internship_council_weight, "Internship council weight"),
    }


def group_sessions_by_status(sessions):
    grouped = {status: [] for status in SESSION_STATUSES}
    for s in sessions:
        grouped.setdefault(s.get("status"), []).append(s)
    return grouped


# ===========================
# REGISTRATIONS
# ===========================

def new_registration(session_id, student):
    return {
        "session_id": session_id,
        "student_doc_id": student["id"],
        "student_id": student.get("student_id"),
        "student_name": f"{student.get('first_name', '')} {student.get('last_name', '')}".strip(),
        "registration_date": datetime.now().isoformat(),
        "graduation_status": "not_reporting",
        "internship_status": "not_reporting",
        "project_registration_status": None,
        "proposal_status": "not_submitted",
        "report_status": "not_submitted",
    }


def report_status_update(report_type, status, note="", exemption=None):
    """
    Field updates for setting graduation and/or internship report status.
    `exemption` carries decision_number, decision_date and proof_link when exempting.
    """
    if report_type not in ("graduation", "internship", "both"):
        raise WorkflowError(f"Unknown report type '{report_type}'.")
    if status not in REPORT_STATUSES:
        raise WorkflowError(f"Unknown report status '{status}'.")
    if status == "exempted":
        exemption = exemption or {}
        if not exemption.get("decision_number") or not exemption.get("decision_date"):
            raise WorkflowError("An exemption needs a decision number and date.")

    kinds = ("graduation", "internship") if report_type == "both" else (report_type,)
    update = {}
    for kind in kinds:
        update[f"{kind}_status"] = status
        update[f"{kind}_status_note"] = note or ""
        if status == "exempted":
            update[f"{kind}_exemption_decision_number"] = exemption["decision_number"]
            update[f"{kind}_exemption_decision_date"] = iso_date(exemption["decision_date"])
            update[f"{kind}_exemption_proof_link"] = exemption.get("proof_link") or ""
    return update


def check_move(registrations, target_session_id):
    if not registrations:
        raise WorkflowError("Select at least one registration.")
    if any(r.get("session_id") == target_session_id for r in registrations):
        raise WorkflowError("Registrations are already in the target session.")
    return {"session_id": target_session_id, "subcommittee_id": None}


def project_groups(registrations):
    """Registrations sharing a project title; untitled ones form their own group."""
    groups = {}
    for reg in registrations:
        key = reg.get("project_title") or f"_individual_{reg['id']}"
        groups.setdefault(key, []).append(reg)
    return groups


def round_robin_assignment(registrations, subcommittee_ids):
    """
    Deals unassigned, reporting project groups to subcommittees in turn.
    Returns {registration_id: subcommittee_id}.
    """
    if not subcommittee_ids:
        raise WorkflowError("Create subcommittees before assigning students.")
    pending = [r for r in registrations if not r.get("subcommittee_id") and r.get("graduation_status") == "reporting"]
    if not pending:
        raise WorkflowError("Every reporting student already has a subcommittee.")
    assignment = {}
    for index, group in enumerate(project_groups(pending).values()):
        target = subcommittee_ids[index % len(subcommittee_ids)]
        for reg in group:
            assignment[reg["id"]] = target
    return assignment


def check_member(members, supervisor_id, role, roles):
    if role not in roles:
        raise WorkflowError(f"Unknown role '{role}'.")
    if any(m.get("supervisor_id") == supervisor_id for m in members):
        raise WorkflowError("This supervisor is already a member.")


# ===========================
# TOPICS
# ===========================

def new_topic(session_id, supervisor_id, supervisor_name, title, summary,
              objectives="", expected_results="", max_students=1):
    if not title or len(title.strip()) < 10:
        raise WorkflowError("Topic title must be at least 10 characters.")
    if not summary or len(summary.strip()) < 10:
        raise WorkflowError("Summary must be at least 10 characters.")
    if int(max_students) not in (1, 2):
        raise WorkflowError("A topic takes 1 or 2 students.")
    return {
        "session_id": session_id,
        "supervisor_id": supervisor_id,
        "supervisor_name": supervisor_name,
        "title": title.strip(),
        "summary": summary.strip(),
        "objectives": objectives or "",
        "expected_results": expected_results or "",
        "max_students": int(max_students),
        "status": "pending",
        "rejection_reason": "",
        "created_at": datetime.now().isoformat(),
    }


def review_topic(topic, action, reason=""):
    if topic.get("status") != "pending":
        raise WorkflowError("Only pending topics can be reviewed.")
    if action == "approve":
        return {"status": "approved", "rejection_reason": ""}
    if action == "reject":
        if not reason:
            raise WorkflowError("A rejection reason is required.")
        return {"status": "rejected", "rejection_reason": reason}
    raise WorkflowError(f"Unknown action '{action}'.")


def can_delete_topic(topic):
    return topic.get("status") not in ("approved", "taken")


def register_topic(registration, topic, allow_registration=True):
    """Registration fields written when a student picks an approved topic."""
    if not allow_registration:
        raise WorkflowError("Topic registration is currently closed.")
    if topic.get("status") != "approved":
        raise WorkflowError("This topic is not open for registration.")
    if topic.get("session_id") != registration.get("session_id"):
        raise WorkflowError("This topic belongs to another session.")
    if registration.get("project_registration_status") in ("pending", "approved"):
        raise WorkflowError("You already registered for a topic.")
    return {
        "project_title": topic["title"],
        "summary": topic.get("summary", ""),
        "objectives": topic.get("objectives", ""),
        "expected_results": topic.get("expected_results", ""),
        "supervisor_id": topic["supervisor_id"],
        "supervisor_name": topic.get("supervisor_name", ""),
        "project_registration_status": "pending",
    }


def confirm_topic_registration(registration, topic, action, registrations):
    """
    Supervisor decision on a student's topic registration.
    Returns (registration_update, topic_update or None).
    """
    if registration.get("project_registration_status") != "pending":
        raise WorkflowError("This registration is not waiting for confirmation.")
    capacity = int(topic.get("max_students") or 1)
    approved = [r for r in registrations
                if r.get("session_id") == topic.get("session_id")
                and r.get("project_title") == topic.get("title")
                and r.get("project_registration_status") == "approved"
                and r.get("id") != registration.get("id")]
    if action == "approve":
        if len(approved) >= capacity:
            raise WorkflowError("This topic is already full.")
        topic_update = {"status": "taken"} if len(approved) + 1 >= capacity else None
        return {"project_registration_status": "approved"}, topic_update
    if action == "reject":
        reg_update = {field: None for field in TOPIC_FIELDS}
        reg_update["project_registration_status"] = "rejected"
        reopen = topic.get("status") == "taken" and len(approved) < capacity
        return reg_update, ({"status": "approved"} if reopen else None)
    raise WorkflowError(f"Unknown action '{action}'.")


# ===========================
# COMPANIES
# ===========================

def new_company(name, address="", contact_name="", contact_phone="", contact_email=""):
    if not name or not str(name).strip():
        raise WorkflowError("Company name is required.")
    return {
        "name": str(name).strip(),
        "address": address or "",
        "contact_name": contact_name or "",
        "contact_phone": contact_phone or "",
        "contact_email": contact_email or "",
    }


def session_companies_update(session, add=(), remove=()):
    """New `company_ids` list of a session: adds keep their order, duplicates are dropped."""
    ids = [cid for cid in session.get("company_ids") or [] if cid not in remove]
    for cid in add:
        if cid not in ids:
            ids.append(cid)
    return {"company_ids": ids}


def company_registration_fields(session, company):
    """Registration company details taken from a company on the session's list."""
    if company.get("id") not in (session.get("company_ids") or []):
        raise WorkflowError(f"{company.get('name')} is not offered in this session.")
    return {
        "company_name": company["name"],
        "company_address": company.get("address") or "",
        "company_supervisor_name": company.get("contact_name") or "",
        "company_supervisor_phone": company.get("contact_phone") or "",
    }


# ===========================
# SUBMISSIONS
# ===========================

def submit_proposal(registration, summary, objectives, expected_results="", proposal_link=""):
    if registration.get("project_registration_status") != "approved":
        raise WorkflowError("Your topic registration has not been confirmed yet.")
    if registration.get("proposal_status") == "approved":
        raise WorkflowError("The proposal has already been approved.")
    if not summary or not objectives:
        raise WorkflowError("Summary and objectives are required.")
    return {
        "summary": summary,
        "objectives": objectives,
        "expected_results": expected_results or "",
        "proposal_link": proposal_link or "",
        "proposal_status": "pending_approval",
    }


def submit_report(registration, report_link, require_approval=True):
    if registration.get("report_status") in ("pending_approval", "approved"):
        raise WorkflowError("A report is already waiting for approval or approved.")
    if not report_link:
        raise WorkflowError("A report file or link is required.")
    return {
        "report_link": report_link,
        "report_status": "pending_approval" if require_approval else "approved",
    }


def submit_post_defense_report(registration, session, report_link, enabled=True):
    """Revised report link after the defense; only once the defense report was approved."""
    if not enabled:
        raise WorkflowError("Post-defense submission is currently closed.")
    if not session.get("post_defense_submission_link"):
        raise WorkflowError("This session does not collect post-defense reports.")
    if registration.get("report_status") != "approved":
        raise WorkflowError("Your report must be approved before the post-defense submission.")
    if not report_link or not report_link.strip():
        raise WorkflowError("A link to the revised report is required.")
    return {"post_defense_report_link": report_link.strip()}


def review_submission(registration, field, action):
    """Supervisor approval of a proposal or report; `field` is 'proposal_status' or 'report_status'."""
    if field not in ("proposal_status", "report_status"):
        raise WorkflowError(f"Unknown submission '{field}'.")
    if registration.get(field) != "pending_approval":
        raise WorkflowError("Nothing is waiting for approval.")
    if action not in ("approve", "reject"):
        raise WorkflowError(f"Unknown action '{action}'.")
    return {field: "approved" if action == "approve" else "rejected"}


def submit_internship_registration(registration, company_name, company_address="",
                                   company_supervisor_name="", company_supervisor_phone="",
                                   acceptance_letter_link=""):
    if registration.get("internship_registration_status") == "approved":
        raise WorkflowError("The internship registration has already been approved.")
    if not company_name:
        raise WorkflowError("Company name is required.")
    return {
        "internship_company_name": company_name,
        "internship_company_address": company_address or "",
        "internship_company_supervisor_name": company_supervisor_name or "",
        "internship_company_supervisor_phone": company_supervisor_phone or "",
        "internship_acceptance_letter_link": acceptance_letter_link or "",
        "internship_status": "reporting",
        "internship_registration_status": "pending",
        "internship_status_note": "",
    }


def review_internship_registration(registration, action, reason=""):
    if registration.get("internship_registration_status") != "pending":
        raise WorkflowError("This internship registration is not pending.")
    if action == "approve":
        return {"internship_registration_status": "approved", "internship_status_note": ""}
    if action == "reject":
        if not reason:
            raise WorkflowError("A rejection reason is required.")
        return {"internship_registration_status": "rejected", "internship_status_note": reason}
    raise WorkflowError(f"Unknown action '{action}'.")


# ===========================
# PROGRESS
# ===========================

def week_number(session_start, today=None):
    """1-based week counted from the Monday of the session's first week; <= 0 before it starts."""
    start = _as_date(session_start)
    if start is None:
        raise WorkflowError("Session has no start date.")
    today = _as_date(today) or date.today()
    monday = start - timedelta(days=start.weekday())
    return (today - monday).days // 7 + 1


def can_submit_progress(reports, week):
    return week > 0 and not any(r.get("week_number") == week for r in reports)


def new_progress_report(registration, session, reports, work_done, next_week_plan, today=None):
    if session.get("status") != "ongoing":
        raise WorkflowError("Progress reports are only accepted during an ongoing session.")
    if registration.get("project_registration_status") != "approved":
        raise WorkflowError("You need a confirmed topic before reporting progress.")
    if not work_done or len(work_done.strip()) < 10:
        raise WorkflowError("Describe the work done (at least 10 characters).")
    if not next_week_plan or len(next_week_plan.strip()) < 10:
        raise WorkflowError("Describe next week's plan (at least 10 characters).")
    week = week_number(session.get("start_date"), today)
    if not can_submit_progress(reports, week):
        raise WorkflowError(f"A report for week {week} cannot be submitted.")
    return {
        "registration_id": registration["id"],
        "session_id": session["id"],
        "student_doc_id": registration.get("student_doc_id"),
        "supervisor_id": registration.get("supervisor_id"),
        "week_number": week,
        "work_done": work_done.strip(),
        "next_week_plan": next_week_plan.strip(),
        "status": "pending_review",
        "supervisor_comments": "",
        "submission_date": datetime.now().isoformat(),
    }


def review_progress_report(status, comments=""):
    if status not in ("approved", "rejected"):
        raise WorkflowError(f"Unknown review status '{status}'.")
    return {"status": status, "supervisor_comments": comments or ""}


def new_early_internship(student, department, supervisor_id, supervisor_name, start_date,
                         end_date=None, proof_link=""):
    if not department:
        raise WorkflowError("Choose a department.")
    if not start_date:
        raise WorkflowError("Start date is required.")
    if end_date and _as_date(end_date) < _as_date(start_date):
        raise WorkflowError("End date cannot be before the start date.")
    return {
        "student_doc_id": student["id"],
        "student_id": student.get("student_id"),
        "student_name": f"{student.get('first_name', '')} {student.get('last_name', '')}".strip(),
        "department": department,
        "supervisor_id": supervisor_id,
        "supervisor_name": supervisor_name or "",
        "start_date": iso_date(start_date),
        "end_date": iso_date(end_date),
        "proof_link": proof_link or "",
        "status": "pending_approval",
        "status_note": "",
    }


def change_early_internship_status(internship, new_status, note=""):
    allowed = EARLY_INTERNSHIP_TRANSITIONS.get(internship.get("status"), ())
    if new_status not in allowed:
        raise WorkflowError(f"Cannot move an early internship from {internship.get('status')} to {new_status}.")
    return {"status": new_status, "status_note": note or ""}


def new_hours_report(internship, reports, week, hours, work_done="", by_supervisor=False):
    """Weekly hours entry; supervisor-entered weeks are approved straight away."""
    if internship.get("status") != "ongoing":
        raise WorkflowError("Hours can only be reported for an ongoing internship.")
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        raise WorkflowError("Hours must be a number.")
    low = 0 if by_supervisor else 1
    if hours < low or hours > 100:
        raise WorkflowError(f"Hours must be between {low} and 100.")
    if int(week) <= 0:
        raise WorkflowError(f"Week {week} is not a valid week number.")
    if any(r.get("week_number") == int(week) for r in reports):
        raise WorkflowError(f"Week {week} has already been reported.")
    return {
        "early_internship_id": internship["id"],
        "student_doc_id": internship.get("student_doc_id"),
        "supervisor_id": internship.get("supervisor_id"),
        "week_number": int(week),
        "hours": hours,
        "work_done": work_done or "",
        "status": "approved" if by_supervisor else "pending_review",
        "supervisor_comments": "",
        "submission_date": datetime.now().isoformat(),
    }


def review_hours_report(status, hours=None, comments=""):
    if status == "approved":
        try:
            granted = float(hours)
        except (TypeError, ValueError):
            raise WorkflowError("Enter the approved number of hours.")
        if granted < 0:
            raise WorkflowError("Approved hours cannot be negative.")
        return {"status": "approved", "hours": granted, "supervisor_comments": comments or ""}
    if status == "rejected":
        return {"status": "rejected", "hours": 0, "supervisor_comments": comments or ""}
    raise WorkflowError(f"Unknown review status '{status}'.")


def approved_hours(reports):
    return sum(float(r.get("hours") or 0) for r in reports if r.get("status") == "approved")


def hours_progress(reports, goal_hours):
    """(approved hours, percent of goal capped at 100)."""
    total = approved_hours(reports)
    if not goal_hours:
        return total, 100.0
    return total, min(100.0, total / float(goal_hours) * 100)
