from .health import health_bp
from .auth import auth_bp
from .agreements import agreements_bp
from .admin import admin_bp
