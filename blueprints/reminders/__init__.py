from flask import Blueprint
from flask_login import login_required

reminders_bp = Blueprint('reminders', __name__, url_prefix='/reminders')

# Require authentication for all routes in this blueprint
@reminders_bp.before_request
@login_required
def require_login():
    pass

from . import routes
