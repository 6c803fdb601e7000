from datetime import datetime

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from errors import AppError, register_error_handlers
from models import db
from models.lease import Lease
from models.user import ROLE_ADMIN, User
from routes import admin_bp, agreements_bp, auth_bp, health_bp
from services import get_core, init_security_core
from services.maintenance import start_background_sweeps
from utils.audit import log_event, purge_activity_logs
from utils.auth_context import load_current_user
from utils.blocklist import is_ip_blocked
from utils.logger import configure_logging, get_logger
from utils.request_meta import client_ip

log = get_logger(__name__)


def create_app(config_object=Config, mailer=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    proxies = app.config.get("TRUSTED_PROXY_COUNT", 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_FORMAT", "console"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(agreements_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    core = init_security_core(app, mailer=mailer, clock=clock or datetime.utcnow)

    @app.before_request
    def _reject_blocked_ip():
        ip = client_ip()
        if is_ip_blocked(ip):
            log.warning("blocked_ip_request_refused", ip=ip)
            return jsonify(error="Access denied. Your IP address has been blocked.", code="ip_blocked"), 403

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    if app.config.get("BACKGROUND_SWEEPS_ENABLED") and not app.config.get("TESTING"):
        core.sweeps = start_background_sweeps(app, core)

    log.info("app_created", sweeps=len(core.sweeps))
    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.session.commit()
            log_event("ROLE_CHANGED", user_id=user.id, details="Promoted to ADMIN from the command line")

        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("cleanup-logs")
    @click.option("--days", type=int, default=None, help="Delete entries older than this many days.")
    def cleanup_logs(days):
        """Purge old activity log entries."""
        days = days if days is not None else app.config.get("LOG_RETENTION_DAYS", 30)
        deleted = purge_activity_logs(days)
        print(f"Deleted {deleted} activity log entries older than {days} days")

    @app.cli.command("send-test-alert")
    def send_test_alert():
        """Send a sample security alert to SECURITY_ALERT_EMAIL."""
        result = get_core().alerter.send_test_alert()
        if result.success:
            print(f"Test alert sent via {result.method}")
        else:
            print(f"Test alert failed: {result.error}")

    @app.cli.command("open-agreement")
    @click.argument("lease_id", type=int)
    def open_agreement(lease_id):
        """Create the rental agreement for an approved lease."""
        lease = db.session.get(Lease, lease_id)
        if not lease:
            print("Lease not found")
            return
        try:
            agreement = get_core().signatures.open_agreement(lease)
        except AppError as exc:
            print(exc.message)
            return
        print(f"Agreement {agreement.id} for lease {lease_id} is {agreement.status}")

    @app.cli.command("reset-agreement")
    @click.argument("lease_id", type=int)
    def reset_agreement(lease_id):
        """Clear both signatures of an agreement."""
        try:
            agreement = get_core().signatures.reset_signatures(lease_id)
        except AppError as exc:
            print(exc.message)
            return
        print(f"Agreement for lease {lease_id} reset to {agreement.status}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
