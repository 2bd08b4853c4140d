# tests/test_workflow.py
from datetime import date

import pytest

import workflow
from workflow import WorkflowError


# =============================================================================
# SESSIONS
# =============================================================================

class TestSessions:
    def test_expected_report_date_is_second_saturday(self):
        assert workflow.expected_report_date(date(2026, 2, 2)) == date(2026, 5, 9)
        assert workflow.expected_report_date("2026-11-15") == date(2027, 2, 13)

    def test_expected_report_date_month_starting_on_saturday(self):
        # 1 August 2026 is a Saturday
        assert workflow.expected_report_date(date(2026, 5, 10)) == date(2026, 8, 8)

    def test_new_session_defaults(self):
        s = workflow.new_session("Spring", "graduation", date(2026, 2, 2), date(2026, 2, 20))
        assert s["status"] == "upcoming"
        assert s["expected_report_date"] == "2026-05-09"
        assert s["graduation_council_weight"] == 80
        assert s["internship_council_weight"] == 50

    def test_deadline_after_report_date_rejected(self):
        with pytest.raises(WorkflowError, match="deadline"):
            workflow.new_session("Spring", "graduation", date(2026, 2, 2), date(2026, 6, 1))

    def test_weight_out_of_range(self):
        with pytest.raises(WorkflowError, match="between 0 and 100"):
            workflow.new_session("Spring", "graduation", date(2026, 2, 2), None, graduation_council_weight=101)

    def test_unknown_type(self):
        with pytest.raises(WorkflowError):
            workflow.new_session("Spring", "thesis", date(2026, 2, 2), None)

    def test_copy(self):
        original = {"id": "s1", "name": "Spring", "status": "completed", "start_date": "2026-02-02",
                    "graduation_council_weight": 70, "council_graduation_rubric_id": "r1"}
        copied = workflow.copy_session(original)
        assert copied["name"] == "Spring (Copy)"
        assert copied["status"] == "upcoming"
        assert copied["start_date"] is None
        assert copied["graduation_council_weight"] == 70
        assert copied["council_graduation_rubric_id"] == "r1"
        assert "id" not in copied

    def test_date_update_defaults_report_date(self):
        assert workflow.date_update(date(2026, 9, 7)) == {
            "start_date": "2026-09-07",
            "registration_deadline": None,
            "expected_report_date": "2026-12-12",
        }

    def test_date_update_needs_start(self):
        with pytest.raises(WorkflowError, match="Start date"):
            workflow.date_update(None, date(2026, 9, 20))

    def test_date_update_deadline_after_report_date(self):
        with pytest.raises(WorkflowError, match="deadline"):
            workflow.date_update(date(2026, 9, 7), date(2026, 10, 1), date(2026, 9, 30))

    def test_status_change_must_differ(self):
        assert workflow.change_session_status({"status": "upcoming"}, "ongoing") == {"status": "ongoing"}
        with pytest.raises(WorkflowError, match="already"):
            workflow.change_session_status({"status": "ongoing"}, "ongoing")
        with pytest.raises(WorkflowError):
            workflow.change_session_status({"status": "ongoing"}, "archived")

    def test_group_by_status(self):
        grouped = workflow.group_sessions_by_status([{"status": "ongoing"}, {"status": "upcoming"},
                                                     {"status": "ongoing"}])
        assert len(grouped["ongoing"]) == 2
        assert grouped["completed"] == []


# =============================================================================
# REGISTRATIONS & COUNCILS
# =============================================================================

class TestRegistrations:
    def test_new_registration_not_reporting(self):
        reg = workflow.new_registration("s1", {"id": "st1", "student_id": "S001", "first_name": "An",
                                               "last_name": "Nguyen"})
        assert reg["student_name"] == "An Nguyen"
        assert reg["graduation_status"] == "not_reporting"
        assert reg["internship_status"] == "not_reporting"

    def test_exemption_needs_decision(self):
        with pytest.raises(WorkflowError, match="decision"):
            workflow.report_status_update("graduation", "exempted", exemption={"decision_number": "QD-1"})

    def test_exemption_both_reports(self):
        update = workflow.report_status_update("both", "exempted", exemption={
            "decision_number": "QD-1", "decision_date": date(2026, 3, 1)})
        assert update["graduation_status"] == "exempted"
        assert update["internship_status"] == "exempted"
        assert update["internship_exemption_decision_date"] == "2026-03-01"
        assert update["graduation_exemption_proof_link"] == ""

    def test_unknown_status(self):
        with pytest.raises(WorkflowError):
            workflow.report_status_update("graduation", "graduated")

    def test_move_to_same_session_rejected(self):
        with pytest.raises(WorkflowError):
            workflow.check_move([{"session_id": "s1"}], "s1")
        assert workflow.check_move([{"session_id": "s1"}], "s2") == {"session_id": "s2", "subcommittee_id": None}

    def test_duplicate_member_rejected(self):
        members = [{"supervisor_id": "sv1", "role": "Head"}]
        with pytest.raises(WorkflowError, match="already"):
            workflow.check_member(members, "sv1", "Secretary", workflow.SUBCOMMITTEE_ROLES)
        with pytest.raises(WorkflowError, match="Unknown role"):
            workflow.check_member(members, "sv2", "President", workflow.SUBCOMMITTEE_ROLES)

    def test_project_groups(self):
        regs = [{"id": "a", "project_title": "Chatbot"}, {"id": "b", "project_title": "Chatbot"},
                {"id": "c", "project_title": ""}, {"id": "d"}]
        groups = workflow.project_groups(regs)
        assert [r["id"] for r in groups["Chatbot"]] == ["a", "b"]
        assert "_individual_c" in groups and "_individual_d" in groups

    def test_round_robin_keeps_groups_together(self):
        regs = [
            {"id": "a", "project_title": "Chatbot", "graduation_status": "reporting"},
            {"id": "b", "project_title": "Vision", "graduation_status": "reporting"},
            {"id": "c", "project_title": "Chatbot", "graduation_status": "reporting"},
            {"id": "d", "project_title": "Drone", "graduation_status": "reporting"},
            {"id": "e", "project_title": "IoT", "graduation_status": "exempted"},
            {"id": "f", "project_title": "Web", "graduation_status": "reporting", "subcommittee_id": "x"},
        ]
        assignment = workflow.round_robin_assignment(regs, ["sc1", "sc2"])
        assert assignment == {"a": "sc1", "c": "sc1", "b": "sc2", "d": "sc1"}

    def test_round_robin_needs_subcommittees(self):
        with pytest.raises(WorkflowError, match="subcommittees"):
            workflow.round_robin_assignment([{"id": "a", "graduation_status": "reporting"}], [])


# =============================================================================
# TOPICS
# =============================================================================

@pytest.fixture
def topic():
    return {"id": "t1", "session_id": "s1", "supervisor_id": "sv1", "supervisor_name": "Dr. Tran",
            "title": "Chatbot for admissions", "summary": "A helpful chatbot", "max_students": 2,
            "status": "approved"}


class TestTopics:
    def test_new_topic_pending(self):
        t = workflow.new_topic("s1", "sv1", "Dr. Tran", "Chatbot for admissions", "A helpful chatbot")
        assert t["status"] == "pending"
        assert t["max_students"] == 1

    def test_new_topic_max_students(self):
        with pytest.raises(WorkflowError):
            workflow.new_topic("s1", "sv1", "Dr. Tran", "Chatbot for admissions", "A helpful chatbot",
                               max_students=3)

    def test_review(self, topic):
        topic["status"] = "pending"
        assert workflow.review_topic(topic, "approve")["status"] == "approved"
        with pytest.raises(WorkflowError, match="reason"):
            workflow.review_topic(topic, "reject")
        assert workflow.review_topic(topic, "reject", "Too broad")["rejection_reason"] == "Too broad"

    def test_review_only_pending(self, topic):
        with pytest.raises(WorkflowError):
            workflow.review_topic(topic, "approve")

    def test_delete_guard(self, topic):
        assert not workflow.can_delete_topic(topic)
        assert not workflow.can_delete_topic(dict(topic, status="taken"))
        assert workflow.can_delete_topic(dict(topic, status="pending"))

    def test_register_copies_topic(self, topic):
        update = workflow.register_topic({"id": "reg1", "session_id": "s1"}, topic)
        assert update["project_title"] == "Chatbot for admissions"
        assert update["supervisor_id"] == "sv1"
        assert update["project_registration_status"] == "pending"

    def test_register_twice_rejected(self, topic):
        with pytest.raises(WorkflowError, match="already"):
            workflow.register_topic({"session_id": "s1", "project_registration_status": "pending"}, topic)

    def test_register_when_closed(self, topic):
        with pytest.raises(WorkflowError, match="closed"):
            workflow.register_topic({"session_id": "s1"}, topic, allow_registration=False)

    def test_register_other_session(self, topic):
        with pytest.raises(WorkflowError):
            workflow.register_topic({"session_id": "s2"}, topic)

    def test_approval_fills_topic(self, topic):
        others = [{"id": "reg0", "session_id": "s1", "project_title": topic["title"],
                   "project_registration_status": "approved"}]
        reg = {"id": "reg1", "project_registration_status": "pending"}
        reg_update, topic_update = workflow.confirm_topic_registration(reg, topic, "approve", others + [reg])
        assert reg_update == {"project_registration_status": "approved"}
        assert topic_update == {"status": "taken"}

    def test_approval_with_room_left(self, topic):
        reg = {"id": "reg1", "project_registration_status": "pending"}
        _, topic_update = workflow.confirm_topic_registration(reg, topic, "approve", [reg])
        assert topic_update is None

    def test_rejection_reopens_taken_topic(self, topic):
        topic["status"] = "taken"
        reg = {"id": "reg1", "project_registration_status": "pending", "project_title": topic["title"]}
        reg_update, topic_update = workflow.confirm_topic_registration(reg, topic, "reject", [reg])
        assert reg_update["project_title"] is None
        assert reg_update["supervisor_id"] is None
        assert reg_update["project_registration_status"] == "rejected"
        assert topic_update == {"status": "approved"}


# =============================================================================
# SUBMISSIONS
# =============================================================================

class TestSubmissions:
    def test_proposal_needs_confirmed_topic(self):
        with pytest.raises(WorkflowError):
            workflow.submit_proposal({"project_registration_status": "pending"}, "Summary", "Objectives")

    def test_proposal_pending(self):
        update = workflow.submit_proposal({"project_registration_status": "approved"}, "Summary", "Objectives")
        assert update["proposal_status"] == "pending_approval"

    def test_report_without_approval(self):
        update = workflow.submit_report({"report_status": "not_submitted"}, "https://x/report.pdf",
                                        require_approval=False)
        assert update["report_status"] == "approved"

    def test_report_locked(self):
        for status in ("pending_approval", "approved"):
            with pytest.raises(WorkflowError):
                workflow.submit_report({"report_status": status}, "https://x/report.pdf")

    def test_resubmit_after_rejection(self):
        update = workflow.submit_report({"report_status": "rejected"}, "https://x/report.pdf")
        assert update["report_status"] == "pending_approval"

    def test_review_only_pending(self):
        assert workflow.review_submission({"proposal_status": "pending_approval"}, "proposal_status",
                                          "approve") == {"proposal_status": "approved"}
        with pytest.raises(WorkflowError):
            workflow.review_submission({"report_status": "approved"}, "report_status", "reject")

    def test_internship_registration(self):
        update = workflow.submit_internship_registration({"internship_status_note": "old"}, "Acme")
        assert update["internship_status"] == "reporting"
        assert update["internship_registration_status"] == "pending"
        assert update["internship_status_note"] == ""

    def test_internship_rejection_needs_reason(self):
        reg = {"internship_registration_status": "pending"}
        with pytest.raises(WorkflowError):
            workflow.review_internship_registration(reg, "reject")
        update = workflow.review_internship_registration(reg, "reject", "No letter")
        assert update == {"internship_registration_status": "rejected", "internship_status_note": "No letter"}


# =============================================================================
# PROGRESS
# =============================================================================

class TestProgress:
    def test_week_number(self):
        # 4 Feb 2026 is a Wednesday; its week starts on Monday 2 Feb
        assert workflow.week_number("2026-02-04", date(2026, 2, 2)) == 1
        assert workflow.week_number("2026-02-04", date(2026, 2, 8)) == 1
        assert workflow.week_number("2026-02-04", date(2026, 2, 9)) == 2
        assert workflow.week_number("2026-02-04", date(2026, 2, 1)) == 0

    def test_week_number_needs_start_date(self):
        with pytest.raises(WorkflowError, match="no start date"):
            workflow.week_number(None, date(2026, 2, 2))

    def test_progress_report_for_undated_session(self):
        session = {"id": "s1", "status": "ongoing", "start_date": None}
        reg = {"id": "reg1", "project_registration_status": "approved"}
        with pytest.raises(WorkflowError, match="no start date"):
            workflow.new_progress_report(reg, session, [], "Built the login page", "Write the test suite")

    def test_one_report_per_week(self):
        assert workflow.can_submit_progress([{"week_number": 1}], 2)
        assert not workflow.can_submit_progress([{"week_number": 2}], 2)
        assert not workflow.can_submit_progress([], 0)

    def test_progress_report(self):
        session = {"id": "s1", "status": "ongoing", "start_date": "2026-02-02"}
        reg = {"id": "reg1", "project_registration_status": "approved", "supervisor_id": "sv1"}
        report = workflow.new_progress_report(reg, session, [], "Built the login page",
                                              "Write the test suite", today=date(2026, 2, 18))
        assert report["week_number"] == 3
        assert report["status"] == "pending_review"

    def test_progress_report_text_too_short(self):
        session = {"id": "s1", "status": "ongoing", "start_date": "2026-02-02"}
        reg = {"id": "reg1", "project_registration_status": "approved"}
        with pytest.raises(WorkflowError, match="10 characters"):
            workflow.new_progress_report(reg, session, [], "Stuff", "Write the test suite", today=date(2026, 2, 18))

    def test_progress_report_needs_ongoing_session(self):
        session = {"id": "s1", "status": "completed", "start_date": "2026-02-02"}
        reg = {"id": "reg1", "project_registration_status": "approved"}
        with pytest.raises(WorkflowError, match="ongoing"):
            workflow.new_progress_report(reg, session, [], "Built the login page", "Write the test suite")


@pytest.fixture
def internship():
    return {"id": "ei1", "status": "ongoing", "student_doc_id": "st1", "supervisor_id": "sv1"}


class TestEarlyInternship:
    def test_starts_pending(self):
        record = workflow.new_early_internship({"id": "st1", "student_id": "S001", "first_name": "An"},
                                               "AI Lab", "sv1", "Dr. Tran", date(2026, 1, 5))
        assert record["status"] == "pending_approval"

    def test_transitions(self):
        assert workflow.change_early_internship_status({"status": "pending_approval"}, "ongoing")["status"] == "ongoing"
        with pytest.raises(WorkflowError):
            workflow.change_early_internship_status({"status": "pending_approval"}, "completed")
        with pytest.raises(WorkflowError):
            workflow.change_early_internship_status({"status": "rejected"}, "ongoing")

    def test_student_hours_range(self, internship):
        with pytest.raises(WorkflowError, match="between 1 and 100"):
            workflow.new_hours_report(internship, [], 1, 0)
        with pytest.raises(WorkflowError):
            workflow.new_hours_report(internship, [], 1, 101)
        assert workflow.new_hours_report(internship, [], 1, 40)["status"] == "pending_review"

    def test_supervisor_week_auto_approved(self, internship):
        assert workflow.new_hours_report(internship, [], 1, 40, by_supervisor=True)["status"] == "approved"

    def test_duplicate_week(self, internship):
        with pytest.raises(WorkflowError, match="already"):
            workflow.new_hours_report(internship, [{"week_number": 1}], 1, 40)

    def test_week_before_start_is_invalid(self, internship):
        with pytest.raises(WorkflowError, match="not a valid week"):
            workflow.new_hours_report(internship, [], 0, 40)

    def test_review_sets_hours(self):
        assert workflow.review_hours_report("approved", 35)["hours"] == 35
        assert workflow.review_hours_report("rejected")["hours"] == 0

    def test_progress_against_goal(self):
        reports = [{"status": "approved", "hours": 350}, {"status": "pending_review", "hours": 40},
                   {"status": "approved", "hours": 500}]
        assert workflow.approved_hours(reports) == 850
        assert workflow.hours_progress(reports, 700) == (850, 100.0)
        assert workflow.hours_progress(reports[:1], 700) == (350, 50.0)


# =============================================================================
# POST-DEFENSE SUBMISSION
# =============================================================================

@pytest.fixture
def defended():
    session = {"id": "s1", "post_defense_submission_link": "https://drive/revised"}
    reg = {"id": "reg1", "session_id": "s1", "report_status": "approved"}
    return session, reg


class TestPostDefense:
    def test_saves_revised_link(self, defended):
        session, reg = defended
        assert workflow.submit_post_defense_report(reg, session, " https://x/final.pdf ") == {
            "post_defense_report_link": "https://x/final.pdf"}

    def test_needs_approved_report(self, defended):
        session, reg = defended
        reg["report_status"] = "pending_approval"
        with pytest.raises(WorkflowError, match="approved"):
            workflow.submit_post_defense_report(reg, session, "https://x/final.pdf")

    def test_session_without_submission_link(self, defended):
        session, reg = defended
        session["post_defense_submission_link"] = ""
        with pytest.raises(WorkflowError, match="does not collect"):
            workflow.submit_post_defense_report(reg, session, "https://x/final.pdf")

    def test_closed_by_setting(self, defended):
        session, reg = defended
        with pytest.raises(WorkflowError, match="closed"):
            workflow.submit_post_defense_report(reg, session, "https://x/final.pdf", enabled=False)

    def test_link_required(self, defended):
        session, reg = defended
        with pytest.raises(WorkflowError, match="required"):
            workflow.submit_post_defense_report(reg, session, "  ")


# =============================================================================
# COMPANIES
# =============================================================================

class TestCompanies:
    def test_new_company(self):
        company = workflow.new_company(" Acme Corp ", contact_name="Ms. Hoa")
        assert company["name"] == "Acme Corp"
        assert company["contact_name"] == "Ms. Hoa"
        with pytest.raises(WorkflowError, match="name is required"):
            workflow.new_company("")

    def test_session_list_update(self):
        session = {"company_ids": ["c1", "c2"]}
        assert workflow.session_companies_update(session, add=["c2", "c3"]) == {"company_ids": ["c1", "c2", "c3"]}
        assert workflow.session_companies_update(session, remove=["c1"]) == {"company_ids": ["c2"]}
        assert workflow.session_companies_update({}, add=["c1"]) == {"company_ids": ["c1"]}

    def test_registration_fields_from_offered_company(self):
        company = {"id": "c1", "name": "Acme Corp", "address": "1 Main St",
                   "contact_name": "Ms. Hoa", "contact_phone": "0900"}
        fields = workflow.company_registration_fields({"company_ids": ["c1"]}, company)
        assert fields == {"company_name": "Acme Corp", "company_address": "1 Main St",
                          "company_supervisor_name": "Ms. Hoa", "company_supervisor_phone": "0900"}
        with pytest.raises(WorkflowError, match="not offered"):
            workflow.company_registration_fields({"company_ids": []}, company)
