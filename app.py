import logging
from datetime import date

import altair as alt
import pandas as pd
import streamlit as st

import database as db
import grading
import supabase_handler as sb
import workflow

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Page Configuration
st.set_page_config(
    page_title="Defense & Internship Manager",
    layout="wide",
    initial_sidebar_state="expanded"
)

ADMIN_MENU = ["Sessions", "Council & Subcommittees", "Registrations", "Topic Review", "Rubrics",
              "Grade Report", "People", "Companies", "Settings", "Audit Logs"]
SUPERVISOR_MENU = ["My Topics", "Guidance", "Supervisor Grading", "Council Grading", "Early Internships"]
STUDENT_MENU = ["Topic Registration", "Proposal & Report", "Internship Registration", "Weekly Progress",
                "Early Internship"]

STATUS_BADGES = {
    "upcoming": "🕒", "ongoing": "🟢", "completed": "✅",
    "pending": "🟡", "pending_approval": "🟡", "pending_review": "🟡",
    "approved": "✅", "rejected": "❌", "taken": "🔒",
    "reporting": "🎤", "exempted": "📄", "withdrawn": "↩️", "not_reporting": "⏸️",
}


def badge(status):
    return f"{STATUS_BADGES.get(status, '•')} {status or '-'}"


def show_result(result, rerun=True):
    """Displays a (success, message) tuple from the database layer."""
    success, msg = result
    if success:
        st.toast(f"✅ {msg}")
        if rerun:
            st.rerun()
    else:
        st.error(msg)
    return success


def acting_id():
    return st.session_state.get("acting_id")


def acting_name():
    return st.session_state.get("acting_name", "Admin")


def to_date(value):
    return pd.to_datetime(value).date() if value else None


def pick_session(key, statuses=None):
    sessions = db.get_sessions()
    if statuses:
        sessions = [s for s in sessions if s.get("status") in statuses]
    if not sessions:
        st.info("No defense sessions available.")
        return None
    labels = {f"{s['name']} ({s['status']})": s for s in sessions}
    choice = st.selectbox("Defense Session", list(labels.keys()), key=key)
    return labels[choice]


def rubric_select(label, current_id, rubric_options, key):
    names = ["-"] + list(rubric_options.keys())
    current = next((n for n, rid in rubric_options.items() if rid == current_id), "-")
    choice = st.selectbox(label, names, index=names.index(current), key=key)
    return rubric_options.get(choice)


def main():
    st.title("🎓 Defense & Internship Manager")

    # Sidebar Navigation
    st.sidebar.markdown("---")
    role = st.sidebar.radio("👤 ACTING AS", ["Admin", "Supervisor", "Student"])

    if role == "Admin":
        st.session_state["acting_id"] = None
        st.session_state["acting_name"] = "Admin"
        menu = ADMIN_MENU
    elif role == "Supervisor":
        options = db.get_supervisor_options()
        if not options:
            st.warning("No supervisors yet. Add them as Admin under People.")
            return
        name = st.sidebar.selectbox("Supervisor", list(options.keys()))
        st.session_state["acting_id"] = options[name]
        st.session_state["acting_name"] = name
        menu = SUPERVISOR_MENU
    else:
        options = db.get_student_options()
        if not options:
            st.warning("No students yet. Add them as Admin under People.")
            return
        name = st.sidebar.selectbox("Student", list(options.keys()))
        st.session_state["acting_id"] = options[name]
        st.session_state["acting_name"] = name
        menu = STUDENT_MENU

    st.sidebar.markdown("---")
    choice = st.sidebar.radio("🧭 MAIN MENU", menu)

    pages = {
        "Sessions": show_sessions,
        "Council & Subcommittees": show_councils,
        "Registrations": show_registrations,
        "Topic Review": show_topic_review,
        "Rubrics": show_rubrics,
        "Grade Report": show_grade_report,
        "People": show_people,
        "Companies": show_companies,
        "Settings": show_settings,
        "Audit Logs": show_audit_logs,
        "My Topics": show_my_topics,
        "Guidance": show_guidance,
        "Supervisor Grading": show_supervisor_grading,
        "Council Grading": show_council_grading,
        "Early Internships": show_early_internship_supervision,
        "Topic Registration": show_topic_registration,
        "Proposal & Report": show_submissions,
        "Internship Registration": show_internship_registration,
        "Weekly Progress": show_weekly_progress,
        "Early Internship": show_early_internship,
    }
    pages[choice]()


# ===========================
# ADMIN PAGES
# ===========================

def show_sessions():
    st.header("📅 Defense Sessions")
    rubric_options = {r["name"]: r["id"] for r in db.get_rubrics()}
    tab1, tab2 = st.tabs(["📋 Sessions", "➕ Create Session"])

    with tab1:
        grouped = workflow.group_sessions_by_status(db.get_sessions())
        for status, sessions in grouped.items():
            st.markdown(f"#### {badge(status)} ({len(sessions)})")
            for s in sessions:
                with st.expander(f"{s['name']} · {s['session_type']}"):
                    c1, c2, c3 = st.columns(3)
                    c1.write(f"**Start:** {s.get('start_date') or '-'}")
                    c2.write(f"**Registration deadline:** {s.get('registration_deadline') or '-'}")
                    c3.write(f"**Expected report:** {s.get('expected_report_date') or '-'}")
                    if s.get("description"):
                        st.caption(s["description"])

                    sc1, sc2 = st.columns([2, 1])
                    with sc1:
                        new_status = st.selectbox("Status", workflow.SESSION_STATUSES,
                                                  index=workflow.SESSION_STATUSES.index(s["status"]),
                                                  key=f"status_{s['id']}")
                    with sc2:
                        st.write("")
                        if st.button("Update Status", key=f"set_status_{s['id']}"):
                            show_result(db.update_session_status(s["id"], new_status, acting_name()))

                    with st.form(f"session_edit_{s['id']}"):
                        st.markdown("**Dates & Links**")
                        d1, d2, d3 = st.columns(3)
                        start = d1.date_input("Start Date", value=to_date(s.get("start_date")), key=f"start_{s['id']}")
                        deadline = d2.date_input("Registration Deadline", value=to_date(s.get("registration_deadline")),
                                                 key=f"deadline_{s['id']}")
                        report_date = d3.date_input("Expected Report Date (blank for default)",
                                                    value=to_date(s.get("expected_report_date")),
                                                    key=f"report_{s['id']}")
                        l1, l2 = st.columns(2)
                        group_link = l1.text_input("Group Link", value=s.get("group_link") or "",
                                                   key=f"group_{s['id']}")
                        post_link = l2.text_input("Post-defense Submission Link",
                                                  value=s.get("post_defense_submission_link") or "",
                                                  key=f"post_{s['id']}")
                        st.markdown("**Rubrics & Weights**")
                        r1, r2 = st.columns(2)
                        with r1:
                            cg = rubric_select("Council rubric (graduation)", s.get("council_graduation_rubric_id"),
                                               rubric_options, f"cg_{s['id']}")
                            sg = rubric_select("Supervisor rubric (graduation)", s.get("supervisor_graduation_rubric_id"),
                                               rubric_options, f"sg_{s['id']}")
                            gw = st.number_input("Graduation council weight (%)", 0, 100,
                                                 int(s.get("graduation_council_weight") or 0), key=f"gw_{s['id']}")
                        with r2:
                            ci = rubric_select("Council rubric (internship)", s.get("council_internship_rubric_id"),
                                               rubric_options, f"ci_{s['id']}")
                            co = rubric_select("Company rubric (internship)", s.get("company_internship_rubric_id"),
                                               rubric_options, f"co_{s['id']}")
                            iw = st.number_input("Internship council weight (%)", 0, 100,
                                                 int(s.get("internship_council_weight") or 0), key=f"iw_{s['id']}")
                        if st.form_submit_button("💾 Save"):
                            show_result(db.update_session(s["id"], {
                                "start_date": start,
                                "registration_deadline": deadline,
                                "expected_report_date": report_date,
                                "group_link": group_link,
                                "post_defense_submission_link": post_link,
                                "council_graduation_rubric_id": cg,
                                "supervisor_graduation_rubric_id": sg,
                                "council_internship_rubric_id": ci,
                                "company_internship_rubric_id": co,
                                "graduation_council_weight": gw,
                                "internship_council_weight": iw,
                            }, acting_name()))

                    b1, b2 = st.columns(2)
                    if b1.button("📄 Copy Session", key=f"copy_{s['id']}"):
                        show_result(db.copy_session(s["id"], acting_name()))
                    if b2.button("🗑️ Delete Session", key=f"del_{s['id']}"):
                        show_result(db.delete_session(s["id"], acting_name()))

    with tab2:
        with st.form("session_form"):
            c1, c2 = st.columns(2)
            with c1:
                name = st.text_input("Session Name")
                session_type = st.selectbox("Type", workflow.SESSION_TYPES)
                start = st.date_input("Start Date", value=date.today())
                deadline = st.date_input("Registration Deadline", value=None)
            with c2:
                use_default = st.checkbox("Expected report date: second Saturday, three months after start", value=True)
                report_date = st.date_input("Expected Report Date", value=None)
                group_link = st.text_input("Group Link")
                post_link = st.text_input("Post-defense Submission Link")
            description = st.text_area("Description")
            w1, w2 = st.columns(2)
            gw = w1.number_input("Graduation council weight (%)", 0, 100, workflow.DEFAULT_GRADUATION_COUNCIL_WEIGHT)
            iw = w2.number_input("Internship council weight (%)", 0, 100, workflow.DEFAULT_INTERNSHIP_COUNCIL_WEIGHT)

            if st.form_submit_button("Create Session", type="primary"):
                ok, msg = db.create_session(
                    changed_by=acting_name(), name=name, session_type=session_type, start_date=start,
                    registration_deadline=deadline, report_date=None if use_default else report_date,
                    description=description, group_link=group_link, post_defense_submission_link=post_link,
                    graduation_council_weight=gw, internship_council_weight=iw,
                )
                if ok:
                    st.success("✅ Session created. Assign rubrics from the Sessions tab.")
                else:
                    st.error(msg)


def show_councils():
    st.header("👥 Council & Subcommittees")
    session = pick_session("council_session")
    if not session:
        return
    sup_options = db.get_supervisor_options()
    tab1, tab2, tab3 = st.tabs(["🏛️ Council", "🧩 Subcommittees", "🎯 Assignment"])

    with tab1:
        members = db.get_council_members(session["id"])
        for m in members:
            c1, c2 = st.columns([4, 1])
            c1.write(f"**{m['name']}** · {m['role']}")
            if c2.button("Remove", key=f"rm_council_{m['id']}"):
                show_result(db.remove_council_member(m["id"]))
        if not members:
            st.info("No council members yet.")
        with st.form("council_form"):
            c1, c2 = st.columns(2)
            sup = c1.selectbox("Supervisor", list(sup_options.keys()))
            role = c2.selectbox("Role", workflow.COUNCIL_ROLES)
            if st.form_submit_button("Add Member") and sup:
                show_result(db.add_council_member(session["id"], sup_options[sup], role))

    subcommittees = db.get_subcommittees(session["id"])
    with tab2:
        with st.form("subcommittee_form"):
            sc_name = st.text_input("New Subcommittee Name", value=f"Subcommittee {len(subcommittees) + 1}")
            if st.form_submit_button("Create"):
                show_result(db.create_subcommittee(session["id"], sc_name))

        for sc in subcommittees:
            with st.expander(f"{sc['name']} ({len(sc.get('members') or [])} members)"):
                for m in sc.get("members") or []:
                    c1, c2 = st.columns([4, 1])
                    c1.write(f"{m['name']} · {m['role']}")
                    if c2.button("Remove", key=f"rm_sc_{sc['id']}_{m['supervisor_id']}"):
                        show_result(db.remove_subcommittee_member(sc["id"], m["supervisor_id"]))
                c1, c2, c3 = st.columns([2, 2, 1])
                sup = c1.selectbox("Supervisor", list(sup_options.keys()), key=f"sc_sup_{sc['id']}")
                role = c2.selectbox("Role", workflow.SUBCOMMITTEE_ROLES, key=f"sc_role_{sc['id']}")
                c3.write("")
                if c3.button("Add", key=f"sc_add_{sc['id']}") and sup:
                    show_result(db.add_subcommittee_member(sc["id"], sup_options[sup], role))
                if st.button("🗑️ Delete Subcommittee", key=f"sc_del_{sc['id']}"):
                    show_result(db.delete_subcommittee(sc["id"]))

    with tab3:
        sc_names = {sc["id"]: sc["name"] for sc in subcommittees}
        regs = db.get_registrations(session_id=session["id"])
        if regs:
            df = pd.DataFrame([{
                "Student ID": r.get("student_id"),
                "Student Name": r.get("student_name"),
                "Project Title": r.get("project_title") or "-",
                "Graduation": r.get("graduation_status"),
                "Subcommittee": sc_names.get(r.get("subcommittee_id"), "Unassigned"),
            } for r in regs])
            st.dataframe(df, use_container_width=True, hide_index=True)

        st.caption("Students sharing a project title are always placed in the same subcommittee.")
        if st.button("⚡ Auto-assign Reporting Students", type="primary"):
            show_result(db.auto_assign_subcommittees(session["id"], acting_name()))

        st.subheader("Manual Assignment")
        reg_labels = {f"{r.get('student_id')} - {r.get('student_name')}": r["id"] for r in regs}
        chosen = st.multiselect("Students", list(reg_labels.keys()))
        target = st.selectbox("Subcommittee", ["Unassigned"] + list(sc_names.values()))
        if st.button("Assign") and chosen:
            target_id = next((sid for sid, n in sc_names.items() if n == target), None)
            show_result(db.assign_subcommittee([reg_labels[c] for c in chosen], target_id, acting_name()))


def show_registrations():
    st.header("📝 Registrations")
    session = pick_session("reg_session")
    if not session:
        return
    regs = db.get_registrations(session_id=session["id"])
    reg_labels = {f"{r.get('student_id')} - {r.get('student_name')}": r for r in regs}

    tab1, tab2, tab3, tab4 = st.tabs(["👨‍🎓 Students", "🎤 Report Status", "🔀 Move", "🏢 Internship"])

    with tab1:
        student_options = db.get_student_options()
        to_add = st.multiselect("Register Students", list(student_options.keys()))
        if st.button("Register Selected") and to_add:
            show_result(db.add_registrations(session["id"], [student_options[s] for s in to_add]))
        if regs:
            df = pd.DataFrame([{
                "Student ID": r.get("student_id"),
                "Student Name": r.get("student_name"),
                "Graduation": badge(r.get("graduation_status")),
                "Internship": badge(r.get("internship_status")),
                "Topic": r.get("project_title") or "-",
                "Topic Status": r.get("project_registration_status") or "-",
                "Proposal": r.get("proposal_status"),
                "Report": r.get("report_status"),
                "Post-defense": "✅" if r.get("post_defense_report_link") else "-",
            } for r in regs])
            df.insert(0, "No.", range(1, len(df) + 1))
            st.dataframe(df, use_container_width=True, hide_index=True)

            with st.expander("🗑️ Remove Registration"):
                victim = st.selectbox("Student", list(reg_labels.keys()), key="del_reg")
                if st.button("Delete Registration", type="primary"):
                    show_result(db.delete_registration(reg_labels[victim]["id"], acting_name()))
        else:
            st.info("No students registered in this session.")

    with tab2:
        chosen = st.multiselect("Students", list(reg_labels.keys()), key="status_students")
        c1, c2 = st.columns(2)
        report_type = c1.radio("Report", ["graduation", "internship", "both"], horizontal=True)
        status = c2.selectbox("Status", workflow.REPORT_STATUSES)
        note = st.text_input("Note")
        exemption = None
        if status == "exempted":
            e1, e2, e3 = st.columns(3)
            exemption = {
                "decision_number": e1.text_input("Decision Number"),
                "decision_date": e2.date_input("Decision Date", value=None),
                "proof_link": e3.text_input("Proof Link (optional)"),
            }
        if st.button("Update Status", type="primary") and chosen:
            show_result(db.update_report_status([reg_labels[c]["id"] for c in chosen], report_type, status,
                                                note, exemption, acting_name()))

    with tab3:
        chosen = st.multiselect("Students", list(reg_labels.keys()), key="move_students")
        others = [s for s in db.get_sessions() if s["id"] != session["id"]]
        target = st.selectbox("Target Session", [s["name"] for s in others])
        if st.button("Move") and chosen and target:
            target_id = next(s["id"] for s in others if s["name"] == target)
            show_result(db.move_registrations([reg_labels[c]["id"] for c in chosen], target_id, acting_name()))

    with tab4:
        pending = [r for r in regs if r.get("internship_registration_status") == "pending"]
        st.subheader(f"Pending Internship Registrations ({len(pending)})")
        for r in pending:
            with st.expander(f"{r.get('student_name')} · {r.get('internship_company_name')}"):
                st.write(f"**Address:** {r.get('internship_company_address') or '-'}")
                st.write(f"**Company supervisor:** {r.get('internship_company_supervisor_name') or '-'} "
                         f"({r.get('internship_company_supervisor_phone') or '-'})")
                if r.get("internship_acceptance_letter_link"):
                    st.link_button("📥 Acceptance Letter", r["internship_acceptance_letter_link"])
                reason = st.text_input("Rejection reason", key=f"int_reason_{r['id']}")
                c1, c2 = st.columns(2)
                if c1.button("Approve", key=f"int_ok_{r['id']}"):
                    show_result(db.review_internship_registration(r["id"], "approve", changed_by=acting_name()))
                if c2.button("Reject", key=f"int_no_{r['id']}"):
                    show_result(db.review_internship_registration(r["id"], "reject", reason, acting_name()))

        st.subheader("Internship Supervisors")
        sup_options = db.get_supervisor_options()
        reporting = {k: r for k, r in reg_labels.items() if r.get("internship_status") == "reporting"}
        if reporting:
            who = st.selectbox("Student", list(reporting.keys()), key="int_sup_student")
            sup = st.selectbox("Supervisor", list(sup_options.keys()), key="int_sup_sup")
            if st.button("Assign Supervisor") and sup:
                show_result(db.assign_internship_supervisor(reporting[who]["id"], sup_options[sup]))
        else:
            st.info("No students are reporting an internship.")


def show_topic_review():
    st.header("📚 Topic Review")
    session = pick_session("topic_review_session")
    if not session:
        return
    topics = db.get_topics(session_id=session["id"])
    pending = [t for t in topics if t["status"] == "pending"]

    st.subheader(f"Awaiting Review ({len(pending)})")
    for t in pending:
        with st.expander(f"{t['title']} · {t.get('supervisor_name')}"):
            st.write(t.get("summary"))
            st.caption(f"Objectives: {t.get('objectives') or '-'}")
            st.caption(f"Expected results: {t.get('expected_results') or '-'}")
            st.caption(f"Max students: {t.get('max_students')}")
            reason = st.text_input("Rejection reason", key=f"topic_reason_{t['id']}")
            c1, c2 = st.columns(2)
            if c1.button("Approve", key=f"topic_ok_{t['id']}"):
                show_result(db.review_topic(t["id"], "approve", changed_by=acting_name()))
            if c2.button("Reject", key=f"topic_no_{t['id']}"):
                show_result(db.review_topic(t["id"], "reject", reason, acting_name()))

    st.subheader("All Topics")
    if topics:
        df = pd.DataFrame(topics)[["title", "supervisor_name", "max_students", "status"]]
        df.columns = ["Title", "Supervisor", "Max Students", "Status"]
        st.dataframe(df, use_container_width=True, hide_index=True)


def show_rubrics():
    st.header("📑 Rubrics")
    if st.button("🌱 Add Default Rubrics"):
        show_result(db.seed_default_rubrics())

    empty_criteria = pd.DataFrame(columns=["id", "name", "description", "max_score", "plo", "pi", "clo"])
    tab1, tab2 = st.tabs(["📋 Rubrics", "➕ New Rubric"])

    with tab1:
        rubrics = db.get_rubrics()
        if not rubrics:
            st.info("No rubrics yet.")
        for r in rubrics:
            with st.expander(f"{r['name']} · {grading.rubric_max_total(r):g} points"):
                name = st.text_input("Name", value=r["name"], key=f"rub_name_{r['id']}")
                desc = st.text_input("Description", value=r.get("description") or "", key=f"rub_desc_{r['id']}")
                edited = st.data_editor(pd.DataFrame(r.get("criteria") or [], columns=empty_criteria.columns),
                                        num_rows="dynamic", use_container_width=True, hide_index=True,
                                        key=f"rub_editor_{r['id']}")
                c1, c2 = st.columns(2)
                if c1.button("💾 Save Changes", key=f"rub_save_{r['id']}", type="primary"):
                    show_result(db.save_rubric(name, desc, edited.to_dict("records"), r["id"]))
                if c2.button("🗑️ Delete", key=f"rub_del_{r['id']}"):
                    show_result(db.delete_rubric(r["id"]))

    with tab2:
        name = st.text_input("Rubric Name")
        desc = st.text_input("Description", key="new_rub_desc")
        criteria = st.data_editor(empty_criteria, num_rows="dynamic", use_container_width=True,
                                  hide_index=True, key="new_rub_editor")
        if st.button("Save Rubric", type="primary"):
            show_result(db.save_rubric(name, desc, criteria.to_dict("records")))


def grade_chart(final_scores):
    counts = grading.grade_distribution(final_scores)
    letters = counts["Grade"].tolist()
    y_max = max(5, int(counts["Count"].max() or 0))
    base = alt.Chart(counts).encode(
        x=alt.X("Grade", sort=letters, axis=alt.Axis(labelAngle=0)),
        y=alt.Y("Count", title="Students", axis=alt.Axis(tickMinStep=1, format="d"),
                scale=alt.Scale(domain=[0, y_max])),
        tooltip=["Grade", "Count"]
    )
    bars = base.mark_bar(color="teal")
    text = base.mark_text(align="center", dy=-5, fontSize=14).encode(text=alt.Text("Count", format=".0f"))
    return bars + text


def show_grade_report():
    st.header("📊 Grade Report")
    session = pick_session("report_session")
    if not session:
        return
    report_type = st.radio("Report", ["graduation", "internship"], horizontal=True)
    weight = session.get(f"{report_type}_council_weight")
    st.caption(f"Council weight: {weight}% · other component: {100 - float(weight or 0):g}%")

    df = db.grade_report(session["id"], report_type)
    if df.empty:
        st.info("No reporting students for this report.")
        return

    graded = df["Final Score"].dropna()
    m1, m2, m3 = st.columns(3)
    m1.metric("Reporting Students", len(df))
    m2.metric("Fully Graded", len(graded))
    m3.metric("Average Final", f"{graded.mean():.2f}" if not graded.empty else "-")

    st.dataframe(df.drop(columns=["Registration ID"]), use_container_width=True, hide_index=True)
    st.altair_chart(grade_chart(df["Final Score"]), use_container_width=True)

    st.subheader("🎯 Learning Outcomes (PLO / PI / CLO)")
    outcomes = db.outcome_report(session["id"], report_type)
    if outcomes.empty:
        st.info("No scored criteria mapped to learning outcomes.")
    else:
        st.dataframe(outcomes.drop(columns=["Registration ID"]), use_container_width=True, hide_index=True)


def show_people():
    st.header("🧑‍🤝‍🧑 Students & Supervisors")
    tab1, tab2 = st.tabs(["👨‍🎓 Students", "👨‍🏫 Supervisors"])
    with tab1:
        with st.form("student_form"):
            c1, c2 = st.columns(2)
            with c1:
                student_id = st.text_input("Student ID")
                first = st.text_input("First Name")
                last = st.text_input("Last Name")
            with c2:
                email = st.text_input("Email Address")
                major = st.text_input("Major")
            if st.form_submit_button("Add Student"):
                show_result(db.add_student(student_id, first, last, email, major))
        df = db.get_students()
        if not df.empty:
            st.dataframe(df.drop(columns=["id"], errors="ignore"), use_container_width=True, hide_index=True)
            options = db.get_student_options()
            who = st.selectbox("Delete student", list(options.keys()))
            if st.button("🗑️ Delete Student") and who:
                show_result(db.delete_student(options[who]))
    with tab2:
        with st.form("supervisor_form"):
            name = st.text_input("Supervisor Name")
            email = st.text_input("Email Address")
            department = st.text_input("Department")
            if st.form_submit_button("Add Supervisor"):
                show_result(db.add_supervisor(name, email, department))
        df = db.get_supervisors()
        if not df.empty:
            st.dataframe(df.drop(columns=["id"], errors="ignore"), use_container_width=True, hide_index=True)
            options = db.get_supervisor_options()
            who = st.selectbox("Delete supervisor", list(options.keys()))
            if st.button("🗑️ Delete Supervisor") and who:
                show_result(db.delete_supervisor(options[who]))


def show_companies():
    st.header("🏢 Internship Companies")
    tab1, tab2, tab3 = st.tabs(["➕ Register", "📁 Company Directory", "📅 Session Companies"])

    with tab1:
        with st.form("company_form"):
            name = st.text_input("Company Name")
            address = st.text_input("Address")
            c1, c2, c3 = st.columns(3)
            contact = c1.text_input("Contact Person")
            phone = c2.text_input("Contact Phone")
            email = c3.text_input("Contact Email")
            if st.form_submit_button("Add Company", type="primary"):
                show_result(db.add_company(name, address, contact, phone, email))

    with tab2:
        df = db.get_companies()
        if df.empty:
            st.info("No companies registered yet.")
        else:
            search = st.text_input("🔍 Search Company Name", "")
            if search:
                df = df[df["name"].str.contains(search, case=False, na=False)]
            st.dataframe(df.drop(columns=["id", "created_at"], errors="ignore"), use_container_width=True,
                         hide_index=True)
            options = db.get_company_options()
            victim = st.selectbox("Delete company", list(options.keys()))
            if st.button("🗑️ Delete Company") and victim:
                show_result(db.delete_company(options[victim]))

    with tab3:
        session = pick_session("company_session")
        if not session:
            return
        offered = db.get_session_companies(session["id"])
        for c in offered:
            c1, c2 = st.columns([4, 1])
            c1.write(f"**{c['name']}** · {c.get('address') or '-'}")
            if c2.button("Remove", key=f"unoffer_{c['id']}"):
                show_result(db.update_session_companies(session["id"], remove=[c["id"]], changed_by=acting_name()))
        if not offered:
            st.caption("No companies offered in this session yet.")
        options = {n: cid for n, cid in db.get_company_options().items() if cid not in {c["id"] for c in offered}}
        chosen = st.multiselect("Offer companies", list(options.keys()))
        if st.button("Add to Session") and chosen:
            show_result(db.update_session_companies(session["id"], add=[options[n] for n in chosen],
                                                    changed_by=acting_name()))


def show_settings():
    st.header("⚙️ Settings")
    conn, msg = sb.test_connection()
    if conn:
        st.caption(f"🟢 Storage: {msg}")
    else:
        st.error(f"🔴 Storage Error: {msg}")

    settings = db.get_settings()
    with st.form("settings_form"):
        new = {
            "enable_overall_grading": st.toggle("Allow grading by overall score", settings["enable_overall_grading"]),
            "allow_student_registration": st.toggle("Students may register for topics",
                                                    settings["allow_student_registration"]),
            "require_report_approval": st.toggle("Reports need supervisor approval",
                                                 settings["require_report_approval"]),
            "enable_post_defense_submission": st.toggle("Open post-defense report submission",
                                                        settings["enable_post_defense_submission"]),
            "early_internship_goal_hours": st.number_input("Early internship goal (hours)", 0, 5000,
                                                           int(settings["early_internship_goal_hours"])),
        }
        if st.form_submit_button("💾 Save Settings", type="primary"):
            changed = [k for k, v in new.items() if v != settings[k]]
            for key in changed:
                ok, msg = db.update_setting(key, new[key], acting_name())
                if not ok:
                    st.error(msg)
                    return
            st.success(f"Saved {len(changed)} setting(s).")


def show_audit_logs():
    st.header("🕵️ Audit Logs")
    df = db.get_audit_logs()
    if df.empty:
        st.info("No changes logged yet.")
    else:
        st.dataframe(df.drop(columns=["id"], errors="ignore"), use_container_width=True, hide_index=True)


# ===========================
# SCORE ENTRY
# ===========================

def _step(state_key, amount, max_score):
    st.session_state[state_key] = grading.adjust_score(st.session_state.get(state_key), amount, max_score)


def score_inputs(rubric, existing, key):
    """
    Renders a stepper per criterion (or one overall input when overall grading is on).
    Returns (scores, overall); exactly one of them is set.
    """
    defaults = grading.default_scores(rubric, existing)
    allow_overall = db.get_settings()["enable_overall_grading"]
    overall_mode = allow_overall and st.toggle("Grade by overall score", key=f"{key}_mode")

    if overall_mode:
        max_total = grading.rubric_max_total(rubric)
        detailed_total = sum(st.session_state.get(f"{key}_{c['id']}", defaults[c["id"]]) for c in rubric["criteria"])
        overall = st.number_input(f"Overall score (0 - {max_total:g})", min_value=0.0, max_value=float(max_total),
                                  value=float(round(detailed_total, 2)), step=grading.SCORE_STEP,
                                  key=f"{key}_overall")
        preview = grading.distribute_overall_score(rubric, overall)
        st.dataframe(pd.DataFrame([{"Criterion": c["name"], "Max": c["max_score"], "Score": preview[c["id"]]}
                                   for c in rubric["criteria"]]), hide_index=True, use_container_width=True)
        return None, overall

    scores = {}
    for c in rubric["criteria"]:
        max_score = grading.criterion_max(c)
        state_key = f"{key}_{c['id']}"
        if state_key not in st.session_state:
            st.session_state[state_key] = grading.clamp_score(defaults[c["id"]], max_score)
        c1, c2, c3, c4 = st.columns([4, 1, 2, 1])
        c1.markdown(f"**{c['name']}** (max {max_score:g})")
        if c.get("description"):
            c1.caption(c["description"])
        c2.button("➖", key=f"{state_key}_dec", on_click=_step, args=(state_key, -grading.SCORE_STEP, max_score))
        scores[c["id"]] = c3.number_input(c["name"], min_value=0.0, max_value=max_score, step=grading.SCORE_STEP,
                                          key=state_key, label_visibility="collapsed")
        c4.button("➕", key=f"{state_key}_inc", on_click=_step, args=(state_key, grading.SCORE_STEP, max_score))
    st.metric("Total", f"{grading.total_score(rubric, scores):g} / {grading.rubric_max_total(rubric):g}")
    return scores, None


# ===========================
# SUPERVISOR PAGES
# ===========================

def show_my_topics():
    st.header("💡 My Topics")
    session = pick_session("my_topics_session", statuses=("upcoming", "ongoing"))
    if not session:
        return
    me = acting_id()

    with st.expander("➕ Propose a Topic"):
        with st.form("topic_form"):
            title = st.text_input("Title")
            summary = st.text_area("Summary")
            objectives = st.text_area("Objectives")
            expected = st.text_area("Expected Results")
            max_students = st.radio("Students", [1, 2], horizontal=True)
            if st.form_submit_button("Submit Topic", type="primary"):
                show_result(db.propose_topic(session["id"], me, title, summary, objectives, expected, max_students))

    topics = db.get_topics(session_id=session["id"], supervisor_id=me)
    regs = db.get_registrations(session_id=session["id"], supervisor_id=me)
    for t in topics:
        takers = [r for r in regs if r.get("project_title") == t["title"]]
        with st.container():
            c1, c2 = st.columns([5, 1])
            c1.markdown(f"**{t['title']}** · {badge(t['status'])} · {len(takers)}/{t['max_students']} students")
            if t.get("rejection_reason"):
                c1.caption(f"Rejected: {t['rejection_reason']}")
            if workflow.can_delete_topic(t) and c2.button("🗑️", key=f"del_topic_{t['id']}"):
                show_result(db.delete_topic(t["id"]))
            for r in takers:
                if r.get("project_registration_status") != "pending":
                    st.caption(f"{r.get('student_name')} · {badge(r.get('project_registration_status'))}")
                    continue
                r1, r2, r3 = st.columns([4, 1, 1])
                r1.write(f"🙋 {r.get('student_name')} ({r.get('student_id')}) wants this topic")
                if r2.button("Accept", key=f"acc_{r['id']}"):
                    show_result(db.confirm_topic_registration(r["id"], "approve", acting_name()))
                if r3.button("Decline", key=f"dec_{r['id']}"):
                    show_result(db.confirm_topic_registration(r["id"], "reject", acting_name()))
            st.divider()
    if not topics:
        st.info("You have not proposed any topics in this session.")


def show_guidance():
    st.header("🧭 Guidance")
    session = pick_session("guidance_session")
    if not session:
        return
    regs = [r for r in db.get_registrations(session_id=session["id"], supervisor_id=acting_id())
            if r.get("project_registration_status") == "approved"]
    if not regs:
        st.info("No confirmed students in this session.")
        return

    for r in regs:
        with st.expander(f"{r.get('student_name')} · {r.get('project_title')}"):
            c1, c2 = st.columns(2)
            with c1:
                st.markdown(f"**Proposal:** {badge(r.get('proposal_status'))}")
                if r.get("proposal_link"):
                    st.link_button("📥 Proposal", r["proposal_link"])
                if r.get("proposal_status") == "pending_approval":
                    a, b = st.columns(2)
                    if a.button("Approve", key=f"prop_ok_{r['id']}"):
                        show_result(db.review_submission(r["id"], "proposal_status", "approve", acting_name()))
                    if b.button("Reject", key=f"prop_no_{r['id']}"):
                        show_result(db.review_submission(r["id"], "proposal_status", "reject", acting_name()))
            with c2:
                st.markdown(f"**Report:** {badge(r.get('report_status'))}")
                if r.get("report_link"):
                    st.link_button("📥 Report", r["report_link"])
                if r.get("report_status") == "pending_approval":
                    a, b = st.columns(2)
                    if a.button("Approve", key=f"rep_ok_{r['id']}"):
                        show_result(db.review_submission(r["id"], "report_status", "approve", acting_name()))
                    if b.button("Reject", key=f"rep_no_{r['id']}"):
                        show_result(db.review_submission(r["id"], "report_status", "reject", acting_name()))

            st.markdown("**Weekly Progress**")
            for p in db.get_progress_reports(registration_id=r["id"]):
                st.markdown(f"Week {p['week_number']} · {badge(p['status'])}")
                st.caption(f"Done: {p['work_done']}")
                st.caption(f"Next: {p['next_week_plan']}")
                if p["status"] == "pending_review":
                    comment = st.text_input("Comments", key=f"pc_{p['id']}")
                    a, b = st.columns(2)
                    if a.button("Approve", key=f"p_ok_{p['id']}"):
                        show_result(db.review_progress_report(p["id"], "approved", comment))
                    if b.button("Reject", key=f"p_no_{p['id']}"):
                        show_result(db.review_progress_report(p["id"], "rejected", comment))
                elif p.get("supervisor_comments"):
                    st.caption(f"💬 {p['supervisor_comments']}")


def grade_form(rubric, regs, evaluation_type, existing, key, council):
    """Scores every registration in `regs` with one set of inputs."""
    scores, overall = score_inputs(rubric, existing, key)
    comments = st.text_area("Comments", value=(existing or {}).get("comments", ""), key=f"{key}_comments")
    if st.button("💾 Save Grades", key=f"{key}_save", type="primary"):
        show_result(db.save_evaluations([r["id"] for r in regs], rubric["id"], acting_id(), evaluation_type,
                                        scores=scores, overall=overall, comments=comments, council=council))


def show_supervisor_grading():
    st.header("📝 Supervisor Grading")
    session = pick_session("sv_grading_session", statuses=("ongoing", "completed"))
    if not session:
        return
    me = acting_id()
    report_type = st.radio("Report", ["graduation", "internship"], horizontal=True)
    regs = db.get_registrations(session_id=session["id"])
    if report_type == "graduation":
        rubric = db.get_rubric(session.get("supervisor_graduation_rubric_id"))
        regs = [r for r in regs if r.get("supervisor_id") == me and r.get("graduation_status") == "reporting"]
    else:
        rubric = db.get_rubric(session.get("company_internship_rubric_id"))
        regs = [r for r in regs if r.get("internship_supervisor_id") == me and r.get("internship_status") == "reporting"]
    if not rubric:
        st.warning("No rubric has been set for this session yet.")
        return
    if not regs:
        st.info("No reporting students to grade.")
        return

    evaluations = db.get_evaluations(session_id=session["id"], evaluator_id=me)
    for r in regs:
        existing = grading.find_evaluation(evaluations, r["id"], rubric["id"], report_type, me)
        status = f"✅ {existing['total_score']:g}" if existing else "⏳ not graded"
        with st.expander(f"{r.get('student_name')} · {status}"):
            grade_form(rubric, [r], report_type, existing, f"sv_{report_type}_{r['id']}", council=False)


def show_council_grading():
    st.header("🏛️ Council Grading")
    session = pick_session("council_grading_session", statuses=("ongoing", "completed"))
    if not session:
        return
    me = acting_id()
    my_committees = [sc for sc in db.get_subcommittees(session["id"])
                     if any(m.get("supervisor_id") == me for m in sc.get("members") or [])]
    if not my_committees:
        st.info("You are not on a subcommittee in this session.")
        return
    committee = my_committees[0]
    if len(my_committees) > 1:
        names = [sc["name"] for sc in my_committees]
        committee = my_committees[names.index(st.selectbox("Subcommittee", names))]

    report_type = st.radio("Report", ["graduation", "internship"], horizontal=True, key="council_type")
    rubric = db.get_rubric(session.get(f"council_{report_type}_rubric_id"))
    if not rubric:
        st.warning("No council rubric has been set for this session yet.")
        return

    regs = [r for r in db.get_registrations(session_id=session["id"])
            if r.get("subcommittee_id") == committee["id"] and r.get(f"{report_type}_status") == "reporting"]
    if not regs:
        st.info("No reporting students in your subcommittee.")
        return

    evaluations = db.get_evaluations(session_id=session["id"])
    others = {m["name"]: m["supervisor_id"] for m in committee.get("members") or [] if m.get("supervisor_id") != me}

    for title, group in workflow.project_groups(regs).items():
        label = group[0].get("project_title") or group[0].get("student_name")
        with st.expander(f"📁 {label} ({len(group)} student{'s' if len(group) > 1 else ''})"):
            present = []
            for r in group:
                mine = grading.find_evaluation(evaluations, r["id"], rubric["id"], report_type, me)
                c1, c2 = st.columns([4, 1])
                if mine and mine.get("attendance") == "absent":
                    c1.write(f"🚫 {r.get('student_name')} · absent")
                    if c2.button("Revert", key=f"revert_{r['id']}"):
                        show_result(db.revert_absence(r["id"], rubric["id"], me, report_type, acting_name()))
                    continue
                present.append(r)
                c1.write(f"{r.get('student_name')} · {'✅ ' + format(mine['total_score'], 'g') if mine else '⏳'}")
                if c2.button("Absent", key=f"absent_{r['id']}"):
                    show_result(db.mark_absent(r["id"], rubric["id"], me, report_type, acting_name()))

            if not present:
                continue
            existing = grading.find_evaluation(evaluations, present[0]["id"], rubric["id"], report_type, me)
            grade_form(rubric, present, report_type, existing, f"council_{report_type}_{title}", council=True)

            if others:
                st.markdown("**Copy a colleague's evaluation**")
                c1, c2 = st.columns([3, 1])
                source = c1.selectbox("From", list(others.keys()), key=f"copy_src_{title}")
                if c2.button("Copy to me", key=f"copy_btn_{title}"):
                    for r in present:
                        ok, msg = db.copy_evaluation(r["id"], rubric["id"], report_type, others[source], me)
                        if not ok:
                            st.error(f"{r.get('student_name')}: {msg}")
                            break
                    else:
                        st.rerun()


def show_early_internship_supervision():
    st.header("🏭 Early Internships")
    internships = db.get_early_internships(supervisor_id=acting_id())
    if not internships:
        st.info("No early internships assigned to you.")
        return
    goal = db.get_settings()["early_internship_goal_hours"]
    for e in internships:
        reports = db.get_early_internship_reports(e["id"])
        total, pct = workflow.hours_progress(reports, goal)
        with st.expander(f"{e.get('student_name')} · {e.get('department')} · {badge(e['status'])}"):
            st.progress(pct / 100, text=f"{total:g} / {goal} hours")
            note = st.text_input("Note", key=f"ei_note_{e['id']}")
            for target in workflow.EARLY_INTERNSHIP_TRANSITIONS.get(e["status"], ()):
                if st.button(target.replace("_", " ").title(), key=f"ei_{target}_{e['id']}"):
                    show_result(db.update_early_internship_status(e["id"], target, note, acting_name()))

            for rep in reports:
                st.markdown(f"Week {rep['week_number']} · {rep['hours']:g}h · {badge(rep['status'])}")
                if rep.get("work_done"):
                    st.caption(rep["work_done"])
                if rep["status"] == "pending_review":
                    c1, c2, c3 = st.columns([2, 1, 1])
                    hours = c1.number_input("Approved hours", 0.0, 100.0, float(rep["hours"]), key=f"h_{rep['id']}")
                    if c2.button("Approve", key=f"h_ok_{rep['id']}"):
                        show_result(db.review_hours_report(rep["id"], "approved", hours))
                    if c3.button("Reject", key=f"h_no_{rep['id']}"):
                        show_result(db.review_hours_report(rep["id"], "rejected"))

            if e["status"] == "ongoing":
                with st.form(f"sv_hours_{e['id']}"):
                    c1, c2 = st.columns(2)
                    week = c1.number_input("Week", 1, 52, len(reports) + 1)
                    hours = c2.number_input("Hours", 0.0, 100.0, 40.0)
                    if st.form_submit_button("Add Week (auto-approved)"):
                        show_result(db.submit_hours_report(e["id"], week, hours, by_supervisor=True))


# ===========================
# STUDENT PAGES
# ===========================

def pick_registration(key):
    regs = db.get_registrations(student_doc_id=acting_id())
    if not regs:
        st.info("You are not registered in any defense session yet.")
        return None, None
    sessions = {s["id"]: s for s in db.get_sessions()}
    labels = {sessions.get(r["session_id"], {}).get("name", r["session_id"]): r for r in regs}
    choice = st.selectbox("Defense Session", list(labels.keys()), key=key)
    reg = labels[choice]
    return reg, sessions.get(reg["session_id"])


def show_topic_registration():
    st.header("📚 Topic Registration")
    reg, session = pick_registration("topic_reg")
    if not reg:
        return
    if reg.get("project_title"):
        st.info(f"**{reg['project_title']}** with {reg.get('supervisor_name') or '-'} · "
                f"{badge(reg.get('project_registration_status'))}")
    elif reg.get("project_registration_status") == "rejected":
        st.warning("Your last topic registration was declined. Pick another topic.")

    if not db.get_settings()["allow_student_registration"]:
        st.warning("Topic registration is currently closed.")
        return
    for t in db.get_topics(session_id=session["id"], status="approved"):
        with st.container():
            st.markdown(f"**{t['title']}** · {t.get('supervisor_name')} · up to {t['max_students']} student(s)")
            st.caption(t.get("summary"))
            if st.button("Register", key=f"reg_topic_{t['id']}"):
                show_result(db.register_for_topic(reg["id"], t["id"]))
            st.divider()


def show_submissions():
    st.header("📤 Proposal & Report")
    reg, session = pick_registration("submission_reg")
    if not reg:
        return
    tab1, tab2, tab3 = st.tabs(["📝 Proposal", "📘 Report", "🔁 Post-defense"])
    with tab1:
        st.markdown(f"Status: {badge(reg.get('proposal_status'))}")
        with st.form("proposal_form"):
            summary = st.text_area("Summary", value=reg.get("summary") or "")
            objectives = st.text_area("Objectives", value=reg.get("objectives") or "")
            expected = st.text_area("Expected Results", value=reg.get("expected_results") or "")
            link = st.text_input("Proposal Link", value=reg.get("proposal_link") or "")
            if st.form_submit_button("Submit Proposal", type="primary"):
                show_result(db.submit_proposal(reg["id"], summary, objectives, expected, link))
    with tab2:
        st.markdown(f"Status: {badge(reg.get('report_status'))}")
        if reg.get("report_link"):
            st.link_button("📥 Current Report", reg["report_link"])
        if reg.get("report_status") in ("pending_approval", "approved"):
            st.caption("The report is locked while it waits for approval or once approved.")
        else:
            uploaded = st.file_uploader("Upload Report (PDF)", type=["pdf"])
            link = st.text_input("...or paste a link")
            if st.button("Submit Report", type="primary"):
                ok = True
                if uploaded:
                    with st.spinner("Uploading to Cloud..."):
                        ok, link = db.upload_report(reg["id"], uploaded.getvalue())
                if ok:
                    show_result(db.submit_report(reg["id"], link))
                else:
                    st.error(f"Upload Error: {link}")
    with tab3:
        if not db.get_settings()["enable_post_defense_submission"] or not session.get("post_defense_submission_link"):
            st.info("Post-defense submission is not open for this session.")
        elif reg.get("report_status") != "approved":
            st.info("Available once your defense report is approved.")
        else:
            st.link_button("📂 Submission Folder", session["post_defense_submission_link"])
            with st.form("post_defense_form"):
                link = st.text_input("Revised Report Link", value=reg.get("post_defense_report_link") or "")
                if st.form_submit_button("Save Link", type="primary"):
                    show_result(db.submit_post_defense_report(reg["id"], link))


def show_internship_registration():
    st.header("🏢 Internship Registration")
    reg, session = pick_registration("internship_reg")
    if not reg:
        return
    status = reg.get("internship_registration_status")
    if status:
        st.markdown(f"Status: {badge(status)}")
    if status == "rejected" and reg.get("internship_status_note"):
        st.warning(f"Reason: {reg['internship_status_note']}")
    if status == "approved":
        return
    companies = db.get_session_companies(session["id"]) if session else []
    modes = ["Self-arranged company"] + (["From the session list"] if companies else [])
    mode = st.radio("Registration type", modes, horizontal=True,
                    index=1 if companies and not reg.get("internship_company_name") else 0)
    with st.form("internship_form"):
        company_id = None
        if mode == "From the session list":
            by_name = {c["name"]: c for c in companies}
            picked = by_name[st.selectbox("Company", list(by_name.keys()))]
            st.caption(f"{picked.get('address') or '-'} · {picked.get('contact_name') or '-'} "
                       f"({picked.get('contact_phone') or '-'})")
            company_id = picked["id"]
            company = address = sup_name = sup_phone = ""
        else:
            company = st.text_input("Company Name", value=reg.get("internship_company_name") or "")
            address = st.text_input("Company Address", value=reg.get("internship_company_address") or "")
            c1, c2 = st.columns(2)
            sup_name = c1.text_input("Company Supervisor", value=reg.get("internship_company_supervisor_name") or "")
            sup_phone = c2.text_input("Supervisor Phone", value=reg.get("internship_company_supervisor_phone") or "")
        letter = st.text_input("Acceptance Letter Link", value=reg.get("internship_acceptance_letter_link") or "")
        if st.form_submit_button("Submit", type="primary"):
            show_result(db.submit_internship_registration(reg["id"], company, address, sup_name, sup_phone, letter,
                                                          company_id=company_id))


def show_weekly_progress():
    st.header("🗓️ Weekly Progress")
    reg, session = pick_registration("progress_reg")
    if not reg or not session:
        return
    reports = db.get_progress_reports(registration_id=reg["id"])
    week = workflow.week_number(session["start_date"]) if session.get("start_date") else 0
    st.metric("Current Week", week if week > 0 else "-")

    if session.get("status") == "ongoing" and workflow.can_submit_progress(reports, week):
        with st.form("progress_form"):
            work_done = st.text_area("Work done this week")
            plan = st.text_area("Plan for next week")
            if st.form_submit_button(f"Submit Week {week}", type="primary"):
                show_result(db.submit_progress_report(reg["id"], work_done, plan))
    elif week > 0:
        st.caption("Nothing to submit for this week.")

    for p in reversed(reports):
        st.markdown(f"**Week {p['week_number']}** · {badge(p['status'])}")
        st.caption(f"Done: {p['work_done']}")
        st.caption(f"Next: {p['next_week_plan']}")
        if p.get("supervisor_comments"):
            st.caption(f"💬 {p['supervisor_comments']}")


def show_early_internship():
    st.header("🏭 Early Internship")
    me = acting_id()
    internships = db.get_early_internships(student_doc_id=me)
    goal = db.get_settings()["early_internship_goal_hours"]

    for e in internships:
        reports = db.get_early_internship_reports(e["id"])
        total, pct = workflow.hours_progress(reports, goal)
        with st.expander(f"{e.get('department')} · {e.get('supervisor_name')} · {badge(e['status'])}",
                         expanded=e["status"] == "ongoing"):
            if e.get("status_note"):
                st.caption(f"Note: {e['status_note']}")
            st.progress(pct / 100, text=f"{total:g} / {goal} approved hours")
            if reports:
                df = pd.DataFrame(reports)[["week_number", "hours", "status", "supervisor_comments"]]
                df.columns = ["Week", "Hours", "Status", "Comments"]
                st.dataframe(df, use_container_width=True, hide_index=True)
            if e["status"] == "ongoing":
                with st.form(f"hours_{e['id']}"):
                    c1, c2 = st.columns(2)
                    week = c1.number_input("Week", 1, 52, len(reports) + 1)
                    hours = c2.number_input("Hours", 1.0, 100.0, 40.0)
                    work = st.text_area("Work done")
                    if st.form_submit_button("Report Hours"):
                        show_result(db.submit_hours_report(e["id"], week, hours, work))

    if any(e["status"] in ("pending_approval", "ongoing") for e in internships):
        return
    st.subheader("Register an Early Internship")
    sup_options = db.get_supervisor_options()
    with st.form("early_internship_form"):
        department = st.text_input("Department / Lab")
        sup = st.selectbox("Supervisor", list(sup_options.keys()))
        c1, c2 = st.columns(2)
        start = c1.date_input("Start Date", value=date.today())
        end = c2.date_input("End Date", value=None)
        proof = st.text_input("Proof Link")
        if st.form_submit_button("Register", type="primary") and sup:
            show_result(db.register_early_internship(me, department, sup_options[sup], start, end, proof))


if __name__ == "__main__":
    main()
