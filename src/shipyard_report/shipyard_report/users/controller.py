from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.web import current_actor, permission_required
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Permission, Role
from ..core.exceptions import DomainError
from ..core.permissions import has_permission
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    app.jinja_env.globals["has_permission"] = lambda perm: has_permission(session.get("role"), Permission(perm))
    app.jinja_env.globals["Permission"] = Permission

    @app.route("/", methods=["GET"], endpoint="index")
    def index():
        if "user_id" in session:
            return redirect(url_for("dashboard"))
        return redirect(url_for("login"))

    @app.route("/login", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            email = request.form.get("email", "")
            password = request.form.get("password", "")
            remember = request.form.get("remember_me")

            try:
                s_user = container.auth_service.authenticate(email, password)

                session.clear()
                session.permanent = bool(remember)
                app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

                session["user_id"] = s_user.user_id
                session["name"] = s_user.name
                session["email"] = s_user.email
                session["company"] = s_user.company
                session["role"] = s_user.role.value

                flash("Signed in successfully", "success")
                return redirect(url_for("dashboard"))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Login failed unexpectedly")
                flash("System error while signing in", "danger")

        return render_template("login.html")

    @app.route("/register", methods=["GET", "POST"], endpoint="register")
    def register_account():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            try:
                container.auth_service.register(
                    email=request.form.get("email", ""),
                    name=request.form.get("name", ""),
                    company=request.form.get("company", ""),
                    password=request.form.get("password", ""),
                    confirm_password=request.form.get("confirm_password", ""),
                )
                flash("Account created. You can sign in now.", "success")
                return redirect(url_for("login"))
            except DomainError as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Registration failed unexpectedly")
                flash("System error while creating the account", "danger")

        return render_template("register.html")

    @app.route("/logout", endpoint="logout")
    def logout():
        session.clear()
        flash("Signed out", "info")
        return redirect(url_for("login"))

    @app.route("/admin/users", endpoint="admin_users")
    @permission_required(Permission.MANAGE_USERS)
    def admin_users():
        users = container.user_service.list_users(current_actor())
        return render_template("admin/users.html", users=users, roles=list(Role), active_page="admin_users")

    @app.route("/admin/users/<int:profile_id>/role", methods=["POST"], endpoint="change_user_role")
    @permission_required(Permission.MANAGE_USERS)
    def change_user_role(profile_id: int):
        try:
            container.user_service.change_role(
                current_actor(), profile_id=profile_id, role=request.form.get("role", "")
            )
            flash("Role updated", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Role change failed for profile %s", profile_id)
            flash("System error while updating the role", "danger")
        return redirect(url_for("admin_users"))

    @app.route("/admin/users/<int:profile_id>/active", methods=["POST"], endpoint="toggle_user_active")
    @permission_required(Permission.MANAGE_USERS)
    def toggle_user_active(profile_id: int):
        try:
            is_active = request.form.get("is_active") == "1"
            container.user_service.set_active(current_actor(), profile_id=profile_id, is_active=is_active)
            flash("Account activated" if is_active else "Account deactivated", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Activation change failed for profile %s", profile_id)
            flash("System error while updating the account", "danger")
        return redirect(url_for("admin_users"))
