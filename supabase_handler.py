import logging

import streamlit as st
from supabase import create_client

logger = logging.getLogger(__name__)

REPORT_BUCKET = "reports"


def _read_credentials():
    # Nested [supabase] section first (standard layout)
    if "supabase" in st.secrets:
        return st.secrets["supabase"]["url"], st.secrets["supabase"]["key"]
    # Flat keys
    if "supabase_url" in st.secrets and "supabase_key" in st.secrets:
        return st.secrets["supabase_url"], st.secrets["supabase_key"]
    # Just the section contents pasted at top level
    if "url" in st.secrets and "key" in st.secrets:
        return st.secrets["url"], st.secrets["key"]
    return None, None


def get_supabase_client():
    """Creates the Supabase client from Streamlit secrets, or None if unavailable."""
    try:
        url, key = _read_credentials()
    except Exception as e:
        logger.warning("Could not read Streamlit secrets: %s", e)
        return None
    if not url or not key:
        logger.error("Missing Supabase secrets: add a [supabase] section with url and key.")
        return None
    try:
        return create_client(url, key)
    except Exception:
        logger.exception("Supabase client initialisation failed")
        return None


def test_connection():
    """Checks if Supabase is reachable."""
    client = get_supabase_client()
    if not client:
        return False, "Secrets not found"
    try:
        client.storage.list_buckets()
        return True, "Connected"
    except Exception as e:
        return False, str(e)


def report_file_path(session_id, student_id, kind="report"):
    """Bucket path of a student's uploaded PDF, e.g. '<session>/<student>_report.pdf'."""
    safe_student = "".join(c if c.isalnum() else "_" for c in str(student_id))
    return f"{session_id}/{safe_student}_{kind}.pdf"


def upload_report(client, session_id, student_id, file_bytes, kind="report"):
    """
    Stores a student's PDF in the reports bucket, replacing any earlier upload.
    Returns (ok, public url or error message).
    """
    if not file_bytes:
        return False, "The uploaded file is empty."
    if not file_bytes.startswith(b"%PDF"):
        return False, "Only PDF files can be uploaded."
    path = report_file_path(session_id, student_id, kind)
    bucket = client.storage.from_(REPORT_BUCKET)
    try:
        bucket.upload(
            path=path,
            file=file_bytes,
            file_options={"content-type": "application/pdf", "upsert": "true"}
        )
    except Exception as e:
        logger.exception("Upload of %s failed", path)
        return False, str(e)
    logger.info("Uploaded %s (%d bytes)", path, len(file_bytes))
    return True, bucket.get_public_url(path)


def remove_report(client, session_id, student_id, kind="report"):
    path = report_file_path(session_id, student_id, kind)
    try:
        client.storage.from_(REPORT_BUCKET).remove([path])
        return True
    except Exception:
        logger.exception("Could not delete %s", path)
        return False
