"""
Score aggregation for defense and internship grading.

Everything here is a pure function over rubric / evaluation dicts as they are
stored in the database, so the grading pages and the grade report share one
set of rules.
"""
import math
from datetime import datetime
from fractions import Fraction

import pandas as pd

from rubric_config import GRADE_BANDS

SCORE_STEP = 0.25
STEPS_PER_POINT = 4

SUBCOMMITTEE_ROLE_ORDER = {"Head": 1, "Secretary": 2, "Commissioner": 3}


class GradingError(ValueError):
    pass


def _exact(value):
    # str() first so 0.1 becomes 1/10 rather than its binary expansion
    return Fraction(str(value))


def criterion_max(criterion):
    return float(criterion.get("max_score") or 0)


def rubric_max_total(rubric):
    return sum(criterion_max(c) for c in rubric.get("criteria", []))


def clamp_score(value, max_score):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(value, float(max_score)))


def adjust_score(current, amount, max_score):
    """Steps a criterion score by `amount` (normally ±0.25), clamped to [0, max]."""
    new_value = clamp_score(clamp_score(current, max_score) + amount, max_score)
    return round(new_value, 2)


def validate_scores(rubric, scores):
    """
    Checks a {criterion_id: score} mapping against the rubric.
    Returns the scores as floats in rubric order; raises GradingError otherwise.
    """
    criteria = rubric.get("criteria", [])
    known = {c["id"] for c in criteria}
    unknown = [cid for cid in scores if cid not in known]
    if unknown:
        raise GradingError(f"Unknown criteria for rubric '{rubric.get('name')}': {', '.join(map(str, unknown))}")

    cleaned = {}
    for c in criteria:
        if c["id"] not in scores or scores[c["id"]] is None:
            raise GradingError(f"Missing score for '{c['name']}'.")
        try:
            value = float(scores[c["id"]])
        except (TypeError, ValueError):
            raise GradingError(f"Score for '{c['name']}' is not a number.")
        if math.isnan(value) or value < 0:
            raise GradingError(f"Score for '{c['name']}' cannot be negative.")
        if value > criterion_max(c):
            raise GradingError(f"Score for '{c['name']}' cannot exceed {criterion_max(c):g}.")
        cleaned[c["id"]] = value
    return cleaned


def total_score(rubric, scores):
    total = sum(float(scores.get(c["id"]) or 0) for c in rubric.get("criteria", []))
    return round(total, 2)


def _to_steps(value):
    # nearest quarter point, halves rounded up
    return math.floor(_exact(value) * STEPS_PER_POINT + Fraction(1, 2))


def distribute_overall_score(rubric, overall):
    """
    Spreads a single overall score over the rubric's criteria.

    Each criterion gets its share in proportion to its maximum, rounded to the
    nearest quarter point. The quarter points lost or gained by rounding are
    then handed out (or taken back) one at a time, largest remainder first,
    so the criteria always add up to the overall score.
    """
    criteria = rubric.get("criteria", [])
    if not criteria:
        return {}

    maxima = [_exact(criterion_max(c)) for c in criteria]
    caps = [math.floor(m * STEPS_PER_POINT) for m in maxima]
    max_total = sum(maxima)
    if max_total <= 0:
        return {c["id"]: 0.0 for c in criteria}

    target = min(max(_to_steps(overall), 0), sum(caps))

    shares = [target * m / max_total for m in maxima]
    alloc = [min(math.floor(s + Fraction(1, 2)), cap) for s, cap in zip(shares, caps)]

    residual = target - sum(alloc)
    indices = range(len(criteria))
    while residual > 0:
        open_slots = [i for i in indices if alloc[i] < caps[i]]
        i = max(open_slots, key=lambda i: (shares[i] - alloc[i], -i))
        alloc[i] += 1
        residual -= 1
    while residual < 0:
        filled = [i for i in indices if alloc[i] > 0]
        i = min(filled, key=lambda i: (shares[i] - alloc[i], i))
        alloc[i] -= 1
        residual += 1

    return {c["id"]: a / STEPS_PER_POINT for c, a in zip(criteria, alloc)}


def scores_to_list(scores):
    return [{"criterion_id": cid, "score": float(score)} for cid, score in scores.items()]


def scores_from_list(score_items):
    return {item["criterion_id"]: float(item["score"]) for item in (score_items or [])}


def default_scores(rubric, evaluation=None):
    """Initial form values: an existing evaluation's scores, else full marks."""
    if evaluation and evaluation.get("attendance") != "absent":
        existing = scores_from_list(evaluation.get("scores"))
        return {c["id"]: existing.get(c["id"], criterion_max(c)) for c in rubric.get("criteria", [])}
    return {c["id"]: criterion_max(c) for c in rubric.get("criteria", [])}


def build_evaluation(rubric, session_id, registration_id, evaluator_id, evaluation_type,
                     scores=None, overall=None, comments=""):
    """Builds an evaluation record from detailed scores, or from an overall score."""
    if evaluation_type not in ("graduation", "internship"):
        raise GradingError(f"Unknown evaluation type '{evaluation_type}'.")
    if overall is not None:
        try:
            overall_value = float(overall)
        except (TypeError, ValueError):
            raise GradingError("Overall score is not a number.")
        if overall_value < 0 or overall_value > rubric_max_total(rubric):
            raise GradingError(f"Overall score must be between 0 and {rubric_max_total(rubric):g}.")
        scores = distribute_overall_score(rubric, overall_value)
        mode = "overall"
    else:
        scores = validate_scores(rubric, scores or {})
        mode = "detailed"

    return {
        "session_id": session_id,
        "registration_id": registration_id,
        "evaluator_id": evaluator_id,
        "rubric_id": rubric["id"],
        "evaluation_type": evaluation_type,
        "scores": scores_to_list(scores),
        "total_score": total_score(rubric, scores),
        "comments": comments or "",
        "attendance": "present",
        "grading_mode": mode,
        "evaluation_date": datetime.now().isoformat(),
    }


def absent_evaluation(rubric, session_id, registration_id, evaluator_id, evaluation_type):
    record = build_evaluation(
        rubric, session_id, registration_id, evaluator_id, evaluation_type,
        scores={c["id"]: 0 for c in rubric.get("criteria", [])}, comments="Absent",
    )
    record["attendance"] = "absent"
    return record


def copy_evaluation(source, destination_evaluator_id):
    """Clones another council member's evaluation for `destination_evaluator_id`."""
    if not source:
        raise GradingError("Source evaluation not found.")
    if source.get("evaluator_id") == destination_evaluator_id:
        raise GradingError("Source and destination evaluators must differ.")
    copied = {k: v for k, v in source.items() if k != "id"}
    copied["evaluator_id"] = destination_evaluator_id
    copied["scores"] = [dict(item) for item in source.get("scores") or []]
    copied["evaluation_date"] = datetime.now().isoformat()
    return copied


def find_evaluation(evaluations, registration_id, rubric_id, evaluation_type=None, evaluator_id=None):
    for e in evaluations:
        if e.get("registration_id") != registration_id or e.get("rubric_id") != rubric_id:
            continue
        if evaluation_type and e.get("evaluation_type") != evaluation_type:
            continue
        if evaluator_id is not None and e.get("evaluator_id") != evaluator_id:
            continue
        return e
    return None


def council_scores(registration, evaluations, members, rubric_id, evaluation_type):
    """Totals given by the registration's subcommittee members, in role order."""
    if not rubric_id:
        return []
    ordered = sorted(members or [], key=lambda m: SUBCOMMITTEE_ROLE_ORDER.get(m.get("role"), 99))
    result = []
    for member in ordered:
        e = find_evaluation(evaluations, registration["id"], rubric_id, evaluation_type, member.get("supervisor_id"))
        if e is not None:
            result.append({
                "role": member.get("role"),
                "name": member.get("name"),
                "score": float(e.get("total_score") or 0),
                "absent": e.get("attendance") == "absent",
            })
    return result


def council_average(scores):
    if not scores:
        return None
    return sum(s["score"] for s in scores) / len(scores)


def final_score(council_avg, other_score, council_weight):
    """
    Weighted final: council_avg * w + other_score * (1 - w), w = council_weight / 100.
    Returns None while a component that carries weight is still missing.
    """
    try:
        weight = float(council_weight)
    except (TypeError, ValueError):
        raise GradingError("Council weight must be a number.")
    if weight < 0 or weight > 100:
        raise GradingError("Council weight must be between 0 and 100.")
    w = weight / 100
    if w > 0 and council_avg is None:
        return None
    if w < 1 and other_score is None:
        return None
    total = (council_avg or 0) * w + (other_score or 0) * (1 - w)
    return round(total, 2)


def grade_letter(score):
    if score is None or pd.isna(score):
        return None
    for letter, lower in GRADE_BANDS:
        if score >= lower:
            return letter
    return GRADE_BANDS[-1][0]


def grade_distribution(scores):
    """Counts per letter, every letter present (for a fixed chart axis)."""
    letters = [letter for letter, _ in GRADE_BANDS]
    series = pd.Series(list(scores), dtype="float64").dropna()
    counts = series.apply(grade_letter).value_counts() if not series.empty else pd.Series(dtype=int)
    counts = counts.reindex(letters, fill_value=0).reset_index()
    counts.columns = ["Grade", "Count"]
    return counts


def _role_columns(rows):
    """Column labels for council members: 'Head', 'Secretary', 'Commissioner 1', ..."""
    widest = {}
    for row in rows:
        per_role = {}
        for s in row["council"]:
            per_role[s["role"]] = per_role.get(s["role"], 0) + 1
        for role, n in per_role.items():
            widest[role] = max(widest.get(role, 0), n)
    labels = []
    for role in sorted(widest, key=lambda r: SUBCOMMITTEE_ROLE_ORDER.get(r, 99)):
        if widest[role] == 1:
            labels.append((role, 1, role))
        else:
            labels.extend((role, i, f"{role} {i}") for i in range(1, widest[role] + 1))
    return labels


def build_grade_report(session, registrations, evaluations, subcommittees, report_type="graduation"):
    """
    One row per reporting student: component scores, council average and the
    weighted final score for `report_type` ('graduation' or 'internship').
    """
    if not session:
        return pd.DataFrame()
    if report_type == "graduation":
        council_rubric = session.get("council_graduation_rubric_id")
        other_rubric = session.get("supervisor_graduation_rubric_id")
        weight = session.get("graduation_council_weight")
        weight = 80 if weight is None else weight
        other_label = "Supervisor"
    elif report_type == "internship":
        council_rubric = session.get("council_internship_rubric_id")
        other_rubric = session.get("company_internship_rubric_id")
        weight = session.get("internship_council_weight")
        weight = 50 if weight is None else weight
        other_label = "Company"
    else:
        raise GradingError(f"Unknown report type '{report_type}'.")

    committees = {sc["id"]: sc for sc in subcommittees}
    rows = []
    for reg in registrations:
        if reg.get(f"{report_type}_status") != "reporting":
            continue
        committee = committees.get(reg.get("subcommittee_id")) or {}

        other = None
        if other_rubric:
            if report_type == "graduation":
                e = find_evaluation(evaluations, reg["id"], other_rubric, "graduation", reg.get("supervisor_id"))
            else:
                e = (find_evaluation(evaluations, reg["id"], other_rubric, "internship", reg.get("internship_supervisor_id"))
                     or find_evaluation(evaluations, reg["id"], other_rubric, "internship"))
            other = float(e["total_score"]) if e else None

        council = council_scores(reg, evaluations, committee.get("members"), council_rubric, report_type)
        avg = council_average(council)
        rows.append({
            "registration": reg,
            "committee": committee.get("name") or "Unassigned",
            "other": other,
            "council": council,
            "avg": avg,
            "final": final_score(avg, other, weight),
        })

    role_columns = _role_columns(rows)
    records = []
    for row in rows:
        reg = row["registration"]
        record = {
            "Registration ID": reg["id"],
            "Student ID": reg.get("student_id"),
            "Student Name": reg.get("student_name"),
        }
        if report_type == "graduation":
            record["Project Title"] = reg.get("project_title") or "-"
        else:
            record["Company"] = reg.get("internship_company_name") or "-"
        record["Subcommittee"] = row["committee"]
        record[f"{other_label} Score"] = row["other"]
        seen = {}
        by_label = {}
        for s in row["council"]:
            seen[s["role"]] = seen.get(s["role"], 0) + 1
            by_label[(s["role"], seen[s["role"]])] = s["score"]
        for role, i, label in role_columns:
            record[label] = by_label.get((role, i))
        record["Council Average"] = round(row["avg"], 2) if row["avg"] is not None else None
        record["Final Score"] = row["final"]
        record["Grade"] = grade_letter(row["final"])
        records.append(record)
    return pd.DataFrame(records)


def build_outcome_report(registrations, evaluations, rubrics):
    """Per-student average score for every PLO / PI / CLO tagged in the rubrics."""
    outcome_map = {}
    headers = {"PLO": set(), "PI": set(), "CLO": set()}
    for rubric in rubrics:
        if not rubric:
            continue
        for c in rubric.get("criteria", []):
            tags = outcome_map.setdefault((rubric["id"], c["id"]), [])
            for kind in ("PLO", "PI", "CLO"):
                value = c.get(kind.lower())
                if value:
                    headers[kind].add(value)
                    tags.append(f"{kind}_{value}")

    rubric_ids = {r["id"] for r in rubrics if r}
    records = []
    for reg in registrations:
        sums = {}
        for e in evaluations:
            if e.get("registration_id") != reg["id"] or e.get("rubric_id") not in rubric_ids:
                continue
            for item in e.get("scores") or []:
                for key in outcome_map.get((e["rubric_id"], item["criterion_id"]), []):
                    total, count = sums.get(key, (0.0, 0))
                    sums[key] = (total + float(item["score"]), count + 1)
        record = {
            "Registration ID": reg["id"],
            "Student ID": reg.get("student_id"),
            "Student Name": reg.get("student_name"),
        }
        for key, (total, count) in sums.items():
            record[key] = round(total / count, 2)
        records.append(record)

    columns = ["Registration ID", "Student ID", "Student Name"]
    for kind in ("PLO", "PI", "CLO"):
        columns.extend(f"{kind}_{v}" for v in sorted(headers[kind]))
    return pd.DataFrame(records, columns=columns)
