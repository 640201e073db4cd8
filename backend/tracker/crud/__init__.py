from .crud_user import user
from . import crud_contact
from . import crud_watch
from . import crud_invoice
from . import crud_promo
