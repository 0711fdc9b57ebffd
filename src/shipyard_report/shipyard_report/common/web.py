from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Optional

from flask import flash, redirect, render_template, request, session, url_for

from .datetime_utils import parse_iso_date
from ..core.enums import Permission, Role
from ..core.permissions import has_any_permission
from ..storage.model import UploadedFile
from ..users.model import Actor


def _forbidden():
    current_user = {"name": session.get("name"), "role": session.get("role")}
    return render_template("403.html", current_user=current_user), 403


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            flash("Please sign in to continue", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def permission_required(*permissions: Permission):
    """Allow the view when the session role holds any of `permissions`."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                flash("Please sign in to continue", "warning")
                return redirect(url_for("login"))
            if not has_any_permission(session.get("role"), permissions):
                return _forbidden()
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_actor() -> Actor:
    return Actor(
        user_id=int(session["user_id"]),
        name=session.get("name", ""),
        email=session.get("email", ""),
        role=Role(session.get("role")),
        ip_address=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=request.headers.get("User-Agent"),
    )


def uploaded_file(field: str) -> Optional[UploadedFile]:
    storage = request.files.get(field)
    if storage is None or not storage.filename:
        return None
    return UploadedFile(
        filename=storage.filename,
        content_type=storage.mimetype or "",
        data=storage.read(),
    )


def page_arg() -> int:
    return request.args.get("page", 1, type=int) or 1


def date_arg(name: str) -> Optional[date]:
    """Optional YYYY-MM-DD query argument; malformed values are ignored."""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        return None
