"""Connection, configuration and output helpers shared by the commands."""

from dbakit.helpers.instance import SqlInstance, connect_instance
from dbakit.helpers.instance_config import SqlCredential
from dbakit.helpers.status import CopyStatus, Outcome

__all__ = [
    "CopyStatus",
    "Outcome",
    "SqlCredential",
    "SqlInstance",
    "connect_instance",
]
