"""
Server-rendered pages: login, registration, dashboard
"""

import logging
from urllib.parse import urlparse

from flask import (
    Blueprint,
    current_app,
    flash,
    make_response,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user
from sqlalchemy import func

from blueprints.auth import authenticate, register_user
from database import db
from error_handler import AuthenticationError, BusinessLogicError, ValidationError
from models import Client, Order, OrderGroup
from security_utils import safe_log
from session_security import TokenSecurity
from utils.statuses import OrderStatus

main_bp = Blueprint("main", __name__)

OPEN_STATUSES = (OrderStatus.PENDING.value, OrderStatus.IN_PROGRESS.value)


def _safe_next(target):
    """Only same-site absolute paths are followed after login"""
    if target and target.startswith("/") and not target.startswith("//"):
        if urlparse(target).netloc == "":
            return target
    return url_for("main.dashboard")


@main_bp.route("/")
@main_bp.route("/index")
def index():
    return redirect(url_for("main.dashboard"))


@main_bp.route("/dashboard")
def dashboard():
    safe_log(
        current_app.logger,
        logging.INFO,
        f"User {current_user.username} opened the dashboard",
    )
    by_status = dict(
        db.session.query(Order.status, func.count(Order.id))
        .group_by(Order.status)
        .all()
    )
    open_groups = (
        db.session.query(func.count(func.distinct(OrderGroup.id)))
        .join(Order, Order.order_group_id == OrderGroup.id)
        .filter(Order.status.in_(OPEN_STATUSES))
        .scalar()
    )
    stats = {
        "clients": Client.query.count(),
        "orders": sum(by_status.values()),
        "ordersByStatus": {s: by_status.get(s, 0) for s in OrderStatus.all()},
        "openGroups": open_groups or 0,
    }
    response = make_response(render_template("dashboard.html", stats=stats))
    response.headers["Cache-Control"] = "no-cache"
    return response


@main_bp.route("/login", methods=["GET", "POST"])
def login_page():
    next_page = request.values.get("redirect")
    if request.method == "GET":
        if current_user.is_authenticated:
            return redirect(_safe_next(next_page))
        return render_template("login.html", next_page=next_page)

    try:
        user = authenticate(request.form.get("username"), request.form.get("password"))
    except (AuthenticationError, ValidationError) as e:
        flash(e.message, "danger")
        return render_template("login.html", next_page=next_page), 401

    response = redirect(_safe_next(next_page))
    return TokenSecurity.set_cookie(response, TokenSecurity.issue(user))


@main_bp.route("/register", methods=["GET", "POST"])
def register_page():
    if request.method == "GET":
        return render_template("register.html")

    try:
        user = register_user(
            request.form.get("username"),
            request.form.get("password"),
            request.form.get("adminKey"),
        )
    except (BusinessLogicError, ValidationError) as e:
        flash(e.message, "danger")
        return render_template("register.html"), 400

    flash(
        "Compte administrateur créé" if user.is_admin else "Compte créé",
        "success",
    )
    return redirect(url_for("main.login_page"))


@main_bp.route("/logout")
def logout_page():
    response = redirect(url_for("main.login_page"))
    return TokenSecurity.clear_cookie(response)
