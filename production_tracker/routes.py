from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import db

bp = Blueprint("main", __name__)

# Small health check; also reports whether the database answers
@bp.get("/healthz")
def healthz():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        db.session.rollback()
        database = str(e.__class__.__name__)
    return jsonify({"ok": database == "ok", "database": database})
