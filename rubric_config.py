RUBRIC_TEMPLATES = {
    "Council - Graduation Defense": {
        "description": "Subcommittee members grading the graduation project defense",
        "criteria": [
            {"id": "cg_problem", "name": "Problem & Objectives", "max_score": 1.5, "desc": "Relevance, clarity and scope", "plo": "1", "pi": "1.1", "clo": "1"},
            {"id": "cg_method", "name": "Methodology", "max_score": 2, "desc": "Soundness of the approach", "plo": "2", "pi": "2.1", "clo": "2"},
            {"id": "cg_result", "name": "Results & Product", "max_score": 3, "desc": "Completeness and quality of the outcome", "plo": "3", "pi": "3.1", "clo": "3"},
            {"id": "cg_present", "name": "Presentation", "max_score": 1.5, "desc": "Slides, timing and delivery", "plo": "4", "pi": "4.1", "clo": "4"},
            {"id": "cg_qa", "name": "Q&A", "max_score": 2, "desc": "Ability to defend ideas", "plo": "4", "pi": "4.2", "clo": "4"}
        ]
    },
    "Supervisor - Graduation Project": {
        "description": "Supervisor grading the student's work over the session",
        "criteria": [
            {"id": "sg_attitude", "name": "Attitude & Progress", "max_score": 2, "desc": "Weekly reports and diligence", "plo": "5", "pi": "5.1", "clo": "5"},
            {"id": "sg_content", "name": "Technical Content", "max_score": 5, "desc": "Depth and correctness", "plo": "3", "pi": "3.1", "clo": "3"},
            {"id": "sg_report", "name": "Written Report", "max_score": 3, "desc": "Structure, language and references", "plo": "4", "pi": "4.3", "clo": "4"}
        ]
    },
    "Council - Internship Report": {
        "description": "Subcommittee members grading the internship presentation",
        "criteria": [
            {"id": "ci_report", "name": "Internship Report", "max_score": 4, "desc": "Description of tasks and lessons learned", "plo": "4", "pi": "4.3", "clo": "6"},
            {"id": "ci_present", "name": "Presentation", "max_score": 3, "desc": "Clarity and timing", "plo": "4", "pi": "4.1", "clo": "6"},
            {"id": "ci_qa", "name": "Q&A", "max_score": 3, "desc": "Understanding of the work done", "plo": "5", "pi": "5.2", "clo": "7"}
        ]
    },
    "Company - Internship Evaluation": {
        "description": "Host company supervisor grading the intern",
        "criteria": [
            {"id": "co_discipline", "name": "Discipline", "max_score": 3, "desc": "Attendance and conduct", "plo": "5", "pi": "5.1", "clo": "7"},
            {"id": "co_skill", "name": "Professional Skills", "max_score": 4, "desc": "Quality of assigned work", "plo": "3", "pi": "3.2", "clo": "6"},
            {"id": "co_team", "name": "Teamwork", "max_score": 3, "desc": "Communication and cooperation", "plo": "5", "pi": "5.2", "clo": "7"}
        ]
    }
}

# Lower bound of each letter on the 10-point scale, best first
GRADE_BANDS = [
    ("A", 8.5),
    ("B+", 8.0),
    ("B", 7.0),
    ("C+", 6.5),
    ("C", 5.5),
    ("D+", 5.0),
    ("D", 4.0),
    ("F", 0.0)
]
