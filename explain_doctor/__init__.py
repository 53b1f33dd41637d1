"""
Explain Doctor - MySQL EXPLAIN plan diagnostics
"""

from explain_doctor.core.constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
__app_name__ = APP_NAME
