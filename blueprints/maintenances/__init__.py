from flask import Blueprint
from flask_login import login_required

maintenances_bp = Blueprint('maintenances', __name__, url_prefix='/maintenances')

# Require authentication for all routes in this blueprint
@maintenances_bp.before_request
@login_required
def require_login():
    pass

from . import routes
