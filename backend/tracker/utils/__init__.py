from .errors import error_response, stripe_error_response
from .auth import normalize_email
