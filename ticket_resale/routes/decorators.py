from functools import wraps
from flask_jwt_extended import current_user, jwt_required
from ticket_resale.services.common import require_admin


def admin_required(fn):
    @wraps(fn)
    @jwt_required()
    def wrapper(*args, **kwargs):
        require_admin(current_user)
        return fn(*args, **kwargs)
    return wrapper
