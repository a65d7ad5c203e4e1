"""
dbakit

Administrative automation for SQL Server: copy Database Mail, CMS
registrations and Resource Governor between instances, inspect databases,
and change logins, compression and SQL Agent schedules.
"""

__version__ = "0.1.0"

from dbakit.core.agent_schedule import set_agent_schedule
from dbakit.core.copy_db_mail import copy_db_mail
from dbakit.core.copy_reg_server import copy_reg_server
from dbakit.core.copy_resource_governor import copy_resource_governor
from dbakit.core.database_info import get_database
from dbakit.core.db_compression import set_db_compression
from dbakit.core.login import set_login
from dbakit.core.rename_helper import invoke_rename_helper

__all__ = [
    "copy_db_mail",
    "copy_reg_server",
    "copy_resource_governor",
    "get_database",
    "invoke_rename_helper",
    "set_agent_schedule",
    "set_db_compression",
    "set_login",
]
