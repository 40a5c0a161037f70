import json
import logging
import uuid

import database as db


_log = logging.getLogger(__name__)

INTERVIEW_COLUMNS = "id, user_id, role, type, techstack, questions, created_at"


def _interview_row(row):
    if row is None:
        return None
    return {
        "id": row[0],
        "user_id": row[1],
        "role": row[2],
        "type": row[3],
        "techstack": [t for t in (row[4] or "").split(",") if t],
        "questions": json.loads(row[5] or "[]"),
        "created_at": row[6],
    }


# Create an interview owned by a user
def create_interview(user_id, role, interview_type="interview", techstack=(), questions=()):
    interview_id = uuid.uuid4().hex
    conn = db.connect()
    cur = conn.cursor()

    cur.execute(
        """
        INSERT INTO interviews(id, user_id, role, type, techstack, questions)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (interview_id, str(user_id), role, interview_type, ",".join(techstack), json.dumps(list(questions))),
    )

    conn.commit()
    conn.close()
    return interview_id


def get_interview(interview_id):
    conn = db.connect()
    cur = conn.cursor()
    cur.execute(f"SELECT {INTERVIEW_COLUMNS} FROM interviews WHERE id = ?", (interview_id,))
    row = cur.fetchone()
    conn.close()
    return _interview_row(row)


def get_interviews_by_user(user_id):
    conn = db.connect()
    cur = conn.cursor()
    cur.execute(
        f"SELECT {INTERVIEW_COLUMNS} FROM interviews WHERE user_id = ? ORDER BY created_at DESC",
        (str(user_id),),
    )
    rows = cur.fetchall()
    conn.close()
    return [_interview_row(r) for r in rows]


# Most recent interviews created by other users
def get_latest_interviews(user_id, limit=20):
    conn = db.connect()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {INTERVIEW_COLUMNS} FROM interviews
        WHERE user_id != ?
        ORDER BY created_at DESC
        LIMIT ?
        """,
        (str(user_id), limit),
    )
    rows = cur.fetchall()
    conn.close()
    return [_interview_row(r) for r in rows]


def get_feedback_by_interview(interview_id, user_id):
    conn = db.connect()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, transcript, total_messages, candidate_messages, candidate_words, created_at
        FROM feedback
        WHERE interview_id = ? AND user_id = ?
        ORDER BY created_at DESC
        LIMIT 1
        """,
        (interview_id, str(user_id)),
    )
    row = cur.fetchone()
    conn.close()
    if row is None:
        return None
    return {
        "id": row[0],
        "transcript": json.loads(row[1] or "[]"),
        "total_messages": row[2],
        "candidate_messages": row[3],
        "candidate_words": row[4],
        "created_at": row[5],
    }


def summarize_transcript(transcript):
    candidate = [m for m in transcript if m.get("role") == "user"]
    return {
        "total_messages": len(transcript),
        "candidate_messages": len(candidate),
        "candidate_words": sum(len((m.get("content") or "").split()) for m in candidate),
    }


# Feedback persister: called once when an interview call ends
def create_feedback(interview_id, user_id, transcript, feedback_id=None):
    summary = summarize_transcript(transcript)
    payload = json.dumps(transcript)

    conn = db.connect()
    cur = conn.cursor()
    try:
        if feedback_id:
            cur.execute(
                """
                UPDATE feedback
                SET transcript = ?, total_messages = ?, candidate_messages = ?, candidate_words = ?
                WHERE id = ? AND interview_id = ?
                """,
                (payload, summary["total_messages"], summary["candidate_messages"],
                 summary["candidate_words"], feedback_id, interview_id),
            )
            if cur.rowcount == 0:
                feedback_id = None
        if not feedback_id:
            feedback_id = uuid.uuid4().hex
            cur.execute(
                """
                INSERT INTO feedback(id, interview_id, user_id, transcript,
                                     total_messages, candidate_messages, candidate_words)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (feedback_id, interview_id, str(user_id), payload, summary["total_messages"],
                 summary["candidate_messages"], summary["candidate_words"]),
            )
        conn.commit()
    except db.DatabaseError as exc:
        _log.error("Saving feedback for interview %s failed: %s", interview_id, exc)
        return {"success": False, "feedback_id": None}
    finally:
        conn.close()

    return {"success": True, "feedback_id": feedback_id}
