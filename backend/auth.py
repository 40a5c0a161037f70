import logging

from flask import Blueprint, render_template, request, redirect, session, jsonify
from werkzeug.security import check_password_hash, generate_password_hash

import database as db

auth = Blueprint("auth", __name__)

_log = logging.getLogger(__name__)


def current_user():
    if "user_id" not in session:
        return None
    return {"id": session["user_id"], "name": session.get("user_name", "")}


# ---------------- SIGN IN ----------------
@auth.route("/sign-in", methods=["GET", "POST"])
def sign_in():
    error = None
    if request.method == "POST":
        email = request.form["email"].strip().lower()
        password = request.form["password"]

        conn = db.connect()
        cur = conn.cursor()
        cur.execute("SELECT id, name, password_hash FROM users WHERE email = ?", (email,))
        user = cur.fetchone()
        conn.close()

        if user and check_password_hash(user[2], password):
            session["user_id"] = str(user[0])
            session["user_name"] = user[1]
            return redirect("/")
        error = "Invalid email or password."

    return render_template("sign_in.html", error=error)


# ---------------- SIGN UP ----------------
@auth.route("/sign-up", methods=["GET", "POST"])
def sign_up():
    error = None
    if request.method == "POST":
        name = request.form["name"].strip()
        email = request.form["email"].strip().lower()
        password = request.form["password"]

        if not name or not email or not password:
            error = "Name, email and password are required."
        else:
            conn = db.connect()
            cur = conn.cursor()
            try:
                cur.execute(
                    "INSERT INTO users(name, email, password_hash) VALUES (?, ?, ?)",
                    (name, email, generate_password_hash(password)),
                )
                conn.commit()
            except db.IntegrityError:
                error = "An account with this email already exists."
            finally:
                conn.close()

            if error is None:
                _log.info("Account created for %s", email)
                return redirect("/sign-in")

    return render_template("sign_up.html", error=error)


# ---------------- SIGN OUT ----------------
@auth.route("/sign-out")
def sign_out():
    session.clear()
    return redirect("/sign-in")


@auth.route("/api/auth/signout", methods=["POST"])
def api_sign_out():
    session.clear()
    return jsonify({"ok": True})
