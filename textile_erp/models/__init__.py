# Import all models directly in this __init__.py file to avoid circular imports

from .master_models import *
from .challan_models import *
from .invoice_models import *
from .payroll_models import *
from .statement_models import *
