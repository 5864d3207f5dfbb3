"""
Eligibility filter for monthly risk assessment.

An account participates in month M when:
- it has a launch date, and launched on or before the last day of M, and
- if its status is ARCHIVED, its effective archive date (account archive
  date, else the earliest unit archive date) is on or after the first day of M.

Archived accounts therefore stay eligible through the month they are archived
in and drop out the month after. An ARCHIVED account with no archive date is
never eligible. Other statuses ignore archive dates here: a unit archive on an
active account does not take the account out of scope. Eligibility depends
only on the account and the month, never on metric values.
"""

import logging
from typing import Iterable, List

from churnguard.models.schemas import Account
from churnguard.services.months import first_day, last_day


logger = logging.getLogger(__name__)


def is_account_eligible(account: Account, month: str) -> bool:
    """
    Decide whether an account participates in the given month.

    Args:
        account: Account roster entry.
        month: Month key (YYYY-MM).

    Returns:
        bool: True when the account is assessed for the month.

    Example:
        >>> acct = Account(account_id="A1", launched_at=date(2025, 3, 15))
        >>> is_account_eligible(acct, "2025-02")
        False
        >>> is_account_eligible(acct, "2025-03")
        True
    """
    if account.launched_at is None:
        return False

    if account.launched_at > last_day(month):
        return False

    if account.is_archived:
        archived = account.effective_archived_at
        if archived is None or archived < first_day(month):
            return False

    return True


def filter_eligible_accounts(accounts: Iterable[Account], month: str) -> List[Account]:
    """
    Return the subset of accounts eligible for the month, preserving order.
    """
    accounts = list(accounts)
    eligible = [a for a in accounts if is_account_eligible(a, month)]

    logger.info(
        f"Eligibility for {month}: {len(eligible)} of {len(accounts)} accounts"
    )
    return eligible


__all__ = [
    'is_account_eligible',
    'filter_eligible_accounts',
]
