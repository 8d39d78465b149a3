"""Named authorization policies referenced by clients."""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from warden.config.types import PolicyConfig
from warden.core.settings import POLICY_DECISION_DEFAULT
from warden.oidc.const import (
    POLICY_BUILTINS,
    POLICY_DECISIONS,
    SUBJECT_PREFIX_GROUP,
    SUBJECT_PREFIX_USER,
)
from warden.oidc.report import ValidationReport, join_and, join_or


class PolicyRule(BaseModel):
    """A decision applied when any of its subjects matches."""

    model_config = ConfigDict(frozen=True)

    decision: str
    subjects: tuple[str, ...]

    def matches(self, username: str, groups: Iterable[str]) -> bool:
        """Return True when the user or one of their groups is a subject."""
        group_set = set(groups)
        for subject in self.subjects:
            if subject.startswith(SUBJECT_PREFIX_USER):
                if subject[len(SUBJECT_PREFIX_USER) :] == username:
                    return True
            elif subject.startswith(SUBJECT_PREFIX_GROUP):
                if subject[len(SUBJECT_PREFIX_GROUP) :] in group_set:
                    return True
        return False


class AuthorizationPolicy(BaseModel):
    """A default decision plus ordered rules; the first matching rule wins."""

    model_config = ConfigDict(frozen=True)

    name: str
    default_decision: str
    rules: tuple[PolicyRule, ...] = ()

    def decide(self, username: str, groups: Iterable[str] = ()) -> str:
        """Return the decision for a subject."""
        groups = tuple(groups)
        for rule in self.rules:
            if rule.matches(username, groups):
                return rule.decision
        return self.default_decision


BUILTIN_POLICIES = {
    name: AuthorizationPolicy(name=name, default_decision=name)
    for name in POLICY_BUILTINS
}


class PolicyTable(BaseModel):
    """Normalized policies and the names clients may reference."""

    model_config = ConfigDict(frozen=True)

    policies: dict[str, AuthorizationPolicy] = Field(default_factory=dict)
    discovery_names: tuple[str, ...] = POLICY_BUILTINS

    def get(self, name: str) -> AuthorizationPolicy | None:
        """Look up a policy by name, built-ins first."""
        if name in BUILTIN_POLICIES:
            return BUILTIN_POLICIES[name]
        if name not in self.discovery_names:
            return None
        return self.policies.get(name)


def _decision(value: str, default: str) -> tuple[str, bool]:
    if value == "":
        return default, True
    return value, value in POLICY_DECISIONS


def _valid_subject(subject: str) -> bool:
    for prefix in (SUBJECT_PREFIX_USER, SUBJECT_PREFIX_GROUP):
        if subject.startswith(prefix) and len(subject) > len(prefix):
            return True
    return False


def build_policy_table(
    configs: Mapping[str, PolicyConfig],
    report: ValidationReport,
    default_decision: str = POLICY_DECISION_DEFAULT,
) -> PolicyTable:
    """Validate and normalize the configured authorization policies.

    Policies with reserved or blank names are reported and left out of the
    discovery names, but are still normalized so later lookups never see a
    half-built entry.
    """
    policies: dict[str, AuthorizationPolicy] = {}
    names = list(POLICY_BUILTINS)

    for name, config in configs.items():
        add = True
        if name == "":
            report.error("authorization_policies: policy must have a name")
            add = False
        elif name in POLICY_DECISIONS:
            report.error(
                f"authorization_policies: policy '{name}': option 'name' must not be "
                f"one of {join_and(POLICY_DECISIONS)} but it's configured as '{name}'"
            )
            add = False

        default, ok = _decision(config.default_policy, default_decision)
        if not ok:
            report.error(
                f"authorization_policies: policy '{name}': option 'default_policy' "
                f"must be one of {join_or(POLICY_DECISIONS)} but it's configured as "
                f"'{config.default_policy}'"
            )

        if not config.rules:
            report.error(
                f"authorization_policies: policy '{name}': option 'rules' is required"
            )

        rules: list[PolicyRule] = []
        for i, rule in enumerate(config.rules, start=1):
            decision, ok = _decision(rule.policy, default_decision)
            if not ok:
                report.error(
                    f"authorization_policies: policy '{name}': rules: rule #{i}: "
                    f"option 'policy' must be one of {join_or(POLICY_DECISIONS)} but "
                    f"it's configured as '{rule.policy}'"
                )
            if not rule.subject:
                report.error(
                    f"authorization_policies: policy '{name}': rules: rule #{i}: "
                    "option 'subject' is required"
                )
            for subject in rule.subject:
                if not _valid_subject(subject):
                    report.error(
                        f"authorization_policies: policy '{name}': rules: rule #{i}: "
                        f"option 'subject' must start with '{SUBJECT_PREFIX_USER}' or "
                        f"'{SUBJECT_PREFIX_GROUP}' but it's configured as '{subject}'"
                    )
            rules.append(PolicyRule(decision=decision, subjects=tuple(rule.subject)))

        policies[name] = AuthorizationPolicy(
            name=name, default_decision=default, rules=tuple(rules)
        )
        if add:
            names.append(name)

    return PolicyTable(policies=policies, discovery_names=tuple(names))
