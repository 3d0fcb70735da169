"""
SCORM 2004 Sequencing

Parses ``sequencing`` subtrees into SequencingInfo records and runs the
advisory sequencing checks used during 2004 packaging. Sequencing is
optional: a manifest without any ``sequencing`` element is all-clear.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from ..models.scorm import (
    ControlMode,
    LimitConditions,
    RuleCondition,
    SequencingInfo,
    SequencingRule,
    SequencingValidationResult,
)
from .exceptions import XmlError
from .manifest_xml import XmlNode, parse_float, parse_int, parse_xml

logger = logging.getLogger(__name__)

# Element name -> rule family for the SCORM 2004 rule vocabulary
RULE_ELEMENTS = {
    "preConditionRule": "precondition",
    "exitConditionRule": "exit",
    "postConditionRule": "postcondition",
}

LIMIT_DURATION_ATTRIBUTES = (
    "attemptAbsoluteDurationLimit",
    "attemptExperiencedDurationLimit",
    "activityAbsoluteDurationLimit",
    "activityExperiencedDurationLimit",
    "beginTimeLimit",
    "endTimeLimit",
)


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() == "true"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_conditions(node: XmlNode) -> List[RuleCondition]:
    return [
        RuleCondition(
            condition=condition.attr("condition"),
            operator=condition.attr("operator"),
            referencedObjective=condition.attr("referencedObjective"),
            measureThreshold=parse_float(condition.attr("measureThreshold")),
        )
        for condition in node.iter_descendants("ruleCondition")
    ]


def _parse_rule(node: XmlNode) -> SequencingRule:
    if node.tag == "sequencingRule":
        return SequencingRule(
            conditions=_parse_conditions(node),
            action=node.attr("action"),
        )

    rule_conditions = node.first_child_named("ruleConditions")
    rule_action = node.first_child_named("ruleAction")
    return SequencingRule(
        type=RULE_ELEMENTS[node.tag],
        conditions=_parse_conditions(node),
        conditionCombination=rule_conditions.attr("conditionCombination") if rule_conditions is not None else None,
        action=rule_action.attr("action") if rule_action is not None else None,
    )


def _rule_nodes(sequencing: XmlNode) -> Iterator[XmlNode]:
    for node in sequencing.iter_descendants():
        if node.tag == "sequencingRule" or node.tag in RULE_ELEMENTS:
            yield node


def parse_sequencing(node: XmlNode) -> SequencingInfo:
    """Map one ``sequencing`` element to a SequencingInfo record"""
    info = SequencingInfo()

    control_mode = node.first_descendant_named("controlMode")
    if control_mode is not None:
        info.controlMode = ControlMode(
            choice=_parse_bool(control_mode.attr("choice")),
            choiceExit=_parse_bool(control_mode.attr("choiceExit")),
            flow=_parse_bool(control_mode.attr("flow")),
            forwardOnly=_parse_bool(control_mode.attr("forwardOnly")),
        )

    info.sequencingRules = [_parse_rule(rule) for rule in _rule_nodes(node)]

    limits = node.first_descendant_named("limitConditions")
    if limits is not None:
        info.limitConditions = LimitConditions(
            attemptLimit=parse_int(limits.attr("attemptLimit")),
            **{name: limits.attr(name) for name in LIMIT_DURATION_ATTRIBUTES},
        )

    return info


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _sequencing_nodes(root: XmlNode) -> Iterator[Tuple[str, XmlNode]]:
    """Yield (owner, sequencing node) in document order.

    The owner is the identifier (or ID) of the closest enclosing element
    that carries one, used to make diagnostics traceable.
    """
    stack: List[Tuple[XmlNode, str]] = [(root, "manifest")]
    while stack:
        node, owner = stack.pop()
        if node.tag == "sequencing":
            yield node.attr("ID") or owner, node
        owner = node.attr("identifier") or owner
        stack.extend((child, owner) for child in reversed(node.children))


def validate_sequencing(manifest_xml: str) -> SequencingValidationResult:
    """
    Check SCORM 2004 sequencing semantics

    Errors make the result invalid; warnings never do. Packaging treats
    both as advisory.

    Args:
        manifest_xml: Raw manifest text

    Returns:
        SequencingValidationResult
    """
    errors: List[str] = []
    warnings: List[str] = []

    try:
        root = parse_xml(manifest_xml)
    except XmlError as e:
        errors.append(f"Sequencing validation error: {e}")
        return SequencingValidationResult(valid=False, errors=errors, warnings=warnings)

    for owner, sequencing in _sequencing_nodes(root):
        _check_control_modes(sequencing, owner, warnings)
        _check_rules(sequencing, owner, errors, warnings)
        _check_limit_conditions(sequencing, owner, errors, warnings)

    if errors or warnings:
        logger.debug(
            "Sequencing validation: %d error(s), %d warning(s)", len(errors), len(warnings)
        )
    return SequencingValidationResult(valid=not errors, errors=errors, warnings=warnings)


def _check_control_modes(sequencing: XmlNode, owner: str, warnings: List[str]) -> None:
    for control_mode in sequencing.iter_descendants("controlMode"):
        choice = control_mode.attr("choice") == "true"
        flow = control_mode.attr("flow") == "true"
        if choice and not flow:
            warnings.append(
                f"Choice enabled without flow may lead to navigation issues ({owner})"
            )


def _check_rules(
    sequencing: XmlNode, owner: str, errors: List[str], warnings: List[str]
) -> None:
    for node in _rule_nodes(sequencing):
        rule = _parse_rule(node)
        if not rule.action:
            errors.append(f"Sequencing rule missing required action attribute ({owner})")
        if not rule.conditions:
            warnings.append(
                f"Sequencing rule has no conditions - may not behave as expected ({owner})"
            )


def _check_limit_conditions(
    sequencing: XmlNode, owner: str, errors: List[str], warnings: List[str]
) -> None:
    for limits in sequencing.iter_descendants("limitConditions"):
        raw = limits.attr("attemptLimit")
        if not raw:
            continue
        attempt_limit = parse_int(raw)
        if attempt_limit is None:
            warnings.append(f"Attempt limit '{raw}' is not a number ({owner})")
        elif attempt_limit <= 0:
            errors.append(f"Attempt limit must be greater than 0 ({owner})")
