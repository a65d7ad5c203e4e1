"""Dry-run and confirmation gate for mutating steps."""

from __future__ import annotations

from collections.abc import Callable

from dbakit.helpers.helpers_logging import print_info, print_warning

ConfirmCallback = Callable[[str, str], bool]


class ShouldProcess:
    """Decide whether a mutating action may run.

    Call it with the target and a description of the action before every
    change. In dry-run mode the action is printed and never performed. When a
    ``confirm`` callback is given it must approve each action.

    Example:
        >>> gate = ShouldProcess(dry_run=True)
        >>> gate("sql01", "Dropping mail account ops")
        What if: Performing the operation "Dropping mail account ops" on target "sql01".
        False
    """

    def __init__(
        self,
        dry_run: bool = False,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        self.dry_run = dry_run
        self.confirm = confirm

    def __call__(self, target: str, action: str) -> bool:
        if self.dry_run:
            print_info(f'What if: Performing the operation "{action}" on target "{target}".')
            return False
        if self.confirm is not None and not self.confirm(target, action):
            print_warning(f"Declined: {action} on {target}")
            return False
        return True
