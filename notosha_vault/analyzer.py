"""
Security Analyzer — scores a decrypted secret collection.

Pure data analysis: never receives ciphertext and has no crypto
dependency. Flags weak, reused and stale passwords and aggregates them
into a 0-100 score.
"""
import math
import logging
from enum import Enum
from typing import Iterable, Optional
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel

from .models import Secret

logger = logging.getLogger("notosha.vault")

SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
STALE_AFTER_DAYS = 180

_DAY = timedelta(days=1)
_MONTH = timedelta(days=30)


class PasswordStrength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"
    VERY_STRONG = "very-strong"


class IssueType(str, Enum):
    WEAK = "weak"
    REUSED = "reused"
    OLD = "old"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class AnalyzedSecret(BaseModel):
    """Minimal decrypted input of the analyzer."""

    id: str
    name: str
    password: str
    updated_at: datetime

    @classmethod
    def from_secret(cls, secret: Secret) -> "AnalyzedSecret":
        return cls(
            id=secret.id,
            name=secret.name,
            password=secret.password,
            updated_at=secret.updated_at,
        )


class SecurityIssue(BaseModel):
    id: str
    type: IssueType
    severity: Severity
    title: str
    description: str
    secret_ids: list[str]


class SecurityScore(BaseModel):
    overall: int
    weak_passwords: int
    reused_passwords: int
    old_passwords: int
    strong_passwords: int


class SecurityReport(BaseModel):
    score: SecurityScore
    issues: list[SecurityIssue]
    recommendations: list[str]


def password_score(password: str) -> int:
    """Raw strength score: length, character classes and uniqueness."""
    if not password:
        return 0
    score = 0
    length = len(password)
    for threshold in (8, 12, 16, 20):
        if length >= threshold:
            score += 10
    if any(c.islower() and c.isascii() for c in password):
        score += 10
    if any(c.isupper() and c.isascii() for c in password):
        score += 10
    if any(c in "0123456789" for c in password):
        score += 10
    if any(c in SYMBOLS for c in password):
        score += 10
    unique_ratio = len(set(password)) / length
    score += math.floor(unique_ratio * 20)
    return score


def calculate_password_strength(password: str) -> PasswordStrength:
    score = password_score(password)
    if score < 30:
        return PasswordStrength.WEAK
    if score < 50:
        return PasswordStrength.MEDIUM
    if score < 70:
        return PasswordStrength.STRONG
    return PasswordStrength.VERY_STRONG


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_overall_score(
    total: int, weak: int, reused: int, old: int, strong: int
) -> int:
    """Aggregate 0-100 score; ``total`` must be at least 1."""
    score = 100.0
    score -= (weak / total) * 40
    score -= (reused / total) * 30
    score -= (old / total) * 15
    if strong >= total * 0.8:
        score += 5
    # round half up, as a UI would display it
    return max(0, min(100, math.floor(score + 0.5)))


def _plural(count: int) -> str:
    return "s" if count > 1 else ""


def generate_recommendations(
    score: SecurityScore, issues: list[SecurityIssue], total: int
) -> list[str]:
    if total == 0:
        return ["Add your first secret to start tracking security."]
    recommendations = []
    if score.weak_passwords > 0:
        recommendations.append(
            f"Update {score.weak_passwords} weak password{_plural(score.weak_passwords)} "
            "to improve security. Use the password generator to create strong ones."
        )
    if score.reused_passwords > 0:
        recommendations.append(
            f"Replace {score.reused_passwords} reused password{_plural(score.reused_passwords)} "
            "with unique ones. Password reuse is a major security risk."
        )
    if score.old_passwords > 0:
        recommendations.append(
            f"Consider updating {score.old_passwords} password{_plural(score.old_passwords)} "
            "that haven't been changed in over 6 months."
        )
    if not issues:
        recommendations.append(
            "Excellent! All your passwords are strong and unique. "
            "Keep up the good security practices."
        )
    if score.overall < 80:
        recommendations.append(
            "Enable two-factor authentication (2FA) on critical accounts "
            "for an extra layer of security."
        )
        recommendations.append(
            "Review your security regularly and update passwords every 3-6 months."
        )
    return recommendations


def analyze(
    secrets: Iterable[AnalyzedSecret | Secret],
    now: Optional[datetime] = None,
    stale_after_days: int = STALE_AFTER_DAYS,
) -> SecurityReport:
    """Analyze decrypted secrets and build a security report.

    Args:
        secrets: Decrypted secrets (``Secret`` or ``AnalyzedSecret``).
        now: Reference time for staleness; defaults to current UTC time.
        stale_after_days: Age after which a password is flagged stale.

    Returns:
        SecurityReport with score, issues sorted by severity and
        recommendations.
    """
    items = [
        s if isinstance(s, AnalyzedSecret) else AnalyzedSecret.from_secret(s)
        for s in secrets
    ]
    now = _as_aware(now or datetime.now(timezone.utc))
    stale_before = now - stale_after_days * _DAY

    issues: list[SecurityIssue] = []
    by_password: dict[str, list[AnalyzedSecret]] = {}
    weak = reused = old = strong = 0

    for item in items:
        by_password.setdefault(item.password, []).append(item)
        strength = calculate_password_strength(item.password)
        if strength in (PasswordStrength.WEAK, PasswordStrength.MEDIUM):
            weak += 1
            issues.append(SecurityIssue(
                id=f"weak-{item.id}",
                type=IssueType.WEAK,
                severity=(
                    Severity.CRITICAL if strength is PasswordStrength.WEAK
                    else Severity.HIGH
                ),
                title=f'Weak password for "{item.name}"',
                description=(
                    f"This password is {strength.value}. Consider using a stronger "
                    "password with more characters and variety."
                ),
                secret_ids=[item.id],
            ))
        else:
            strong += 1

    for index, group in enumerate(by_password.values()):
        if len(group) < 2:
            continue
        reused += len(group)
        names = '", "'.join(g.name for g in group)
        issues.append(SecurityIssue(
            id=f"reused-{index}",
            type=IssueType.REUSED,
            severity=Severity.HIGH,
            title=f"Password reused across {len(group)} accounts",
            description=(
                f'The same password is used for: "{names}". '
                "Each account should have a unique password."
            ),
            secret_ids=[g.id for g in group],
        ))

    for item in items:
        updated_at = _as_aware(item.updated_at)
        if updated_at >= stale_before:
            continue
        old += 1
        months = int((now - updated_at) / _MONTH)
        issues.append(SecurityIssue(
            id=f"old-{item.id}",
            type=IssueType.OLD,
            severity=Severity.MEDIUM if months > 12 else Severity.LOW,
            title=f'Password for "{item.name}" is {months} months old',
            description=(
                "Consider updating this password. "
                f"It hasn't been changed in {months} months."
            ),
            secret_ids=[item.id],
        ))

    total = len(items) or 1
    score = SecurityScore(
        overall=calculate_overall_score(total, weak, reused, old, strong),
        weak_passwords=weak,
        reused_passwords=reused,
        old_passwords=old,
        strong_passwords=strong,
    )
    issues.sort(key=lambda i: _SEVERITY_ORDER[i.severity])
    logger.debug(
        "Security analysis: %d secret(s), score=%d", len(items), score.overall,
    )
    return SecurityReport(
        score=score,
        issues=issues,
        recommendations=generate_recommendations(score, issues, len(items)),
    )


def score_label(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"
