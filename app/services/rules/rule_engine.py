"""Usage: evaluate per-field rule chains against document fragments."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from app.schemas.extraction import ExtractionSegment, FieldExtraction, RuleEngineResult
from app.schemas.fragments import SourceFragment
from app.schemas.rules import AbsoluteRule, AnchorRule, FieldRules, ParserConfig, RegexMatchRule
from app.services.rules.anchor_matcher import (
    find_anchor_matches,
    fragments_in_region,
    select_instance,
    value_region,
)
from app.services.rules.text_normalize import clean_text, group_reading_lines

logger = logging.getLogger(__name__)

DEFAULT_PAGE_WIDTH = 1000.0
DEFAULT_PAGE_HEIGHT = 1000.0


@dataclass(frozen=True)
class RuleOutcome:
    extraction: FieldExtraction | None = None
    implemented: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def not_implemented(cls, rule_id: str, rule_type: str) -> "RuleOutcome":
        return cls(implemented=False, errors=[f"not_implemented:{rule_id}:{rule_type}"])


@dataclass(frozen=True)
class _CombinedText:
    text: str
    segments: list[ExtractionSegment]


class RuleEngine:
    """Stateless between calls; safe to share across sessions."""

    def __init__(
        self,
        *,
        default_page_width: float = DEFAULT_PAGE_WIDTH,
        default_page_height: float = DEFAULT_PAGE_HEIGHT,
    ) -> None:
        self.default_page_width = default_page_width
        self.default_page_height = default_page_height

    def extract(
        self,
        fields: Sequence[FieldRules],
        fragments: Sequence[SourceFragment],
    ) -> RuleEngineResult:
        extractions: list[FieldExtraction] = []
        matched: list[str] = []
        unmatched: list[str] = []
        errors: list[str] = []

        for field_rules in fields:
            extraction = self._extract_field(field_rules, fragments, errors)
            if extraction is not None:
                extractions.append(extraction)
                matched.append(extraction.rule_id)
                logger.debug("Rule field extracted: %s rule=%s", field_rules.id, extraction.rule_id)
            else:
                unmatched.extend(rule.id for rule in field_rules.rules)
                logger.debug("Rule field missing: %s", field_rules.id)

        if errors:
            logger.warning("Rule extraction finished with errors: %s", errors)
        return RuleEngineResult(
            extractions=extractions,
            matched_rule_ids=matched,
            unmatched_rule_ids=unmatched,
            errors=errors,
        )

    def _extract_field(
        self,
        field_rules: FieldRules,
        fragments: Sequence[SourceFragment],
        errors: list[str],
    ) -> FieldExtraction | None:
        for rule in sorted(field_rules.rules, key=lambda entry: entry.priority):
            try:
                outcome = self._execute_rule(field_rules.id, rule, fragments)
            except Exception as exc:
                logger.warning("Rule %s failed: %s", rule.id, exc)
                errors.append(f"rule_failed:{rule.id}:{exc}")
                continue
            errors.extend(outcome.errors)
            if outcome.extraction is not None:
                return outcome.extraction
        return None

    def _execute_rule(
        self,
        field_id: str,
        rule: AnchorRule | RegexMatchRule | AbsoluteRule,
        fragments: Sequence[SourceFragment],
    ) -> RuleOutcome:
        if isinstance(rule, AnchorRule):
            return self._execute_anchor_rule(field_id, rule, fragments)
        if isinstance(rule, RegexMatchRule):
            return RuleOutcome.not_implemented(rule.id, rule.rule_type)
        if isinstance(rule, AbsoluteRule):
            return RuleOutcome.not_implemented(rule.id, rule.rule_type)
        raise TypeError(f"Unsupported rule type: {type(rule).__name__}")

    def _execute_anchor_rule(
        self,
        field_id: str,
        rule: AnchorRule,
        fragments: Sequence[SourceFragment],
    ) -> RuleOutcome:
        anchor_cfg = rule.anchor_config
        matches = find_anchor_matches(
            anchor_cfg,
            fragments,
            default_width=self.default_page_width,
            default_height=self.default_page_height,
        )
        anchor = select_instance(matches, anchor_cfg.instance, anchor_cfg.instance_from)
        if anchor is None:
            logger.debug(
                "Anchor not found: rule=%s aliases=%s matches=%d",
                rule.id,
                anchor_cfg.aliases,
                len(matches),
            )
            return RuleOutcome()

        region = value_region(anchor.bounds, rule.position_config)
        candidates = fragments_in_region(fragments, region, anchor.page)
        combined = _combine_text(candidates)
        if combined is None:
            return RuleOutcome()

        value, errors = _parse_value(combined.text, rule.parser_config, rule.id)
        if value is None:
            return RuleOutcome(errors=errors)
        return RuleOutcome(
            extraction=FieldExtraction(
                field_id=field_id,
                value=value,
                segments=combined.segments,
                rule_id=rule.id,
            ),
            errors=errors,
        )


def _combine_text(fragments: Sequence[SourceFragment]) -> _CombinedText | None:
    segments: list[ExtractionSegment] = []
    for line in group_reading_lines(fragments):
        parts: list[str] = []
        ids: list[str] = []
        for fragment in line.fragments:
            text = clean_text(fragment.text)
            if not text:
                continue
            parts.append(text)
            ids.append(fragment.id)
        if parts:
            segments.append(ExtractionSegment(text=" ".join(parts), source_fragment_ids=ids))
    if not segments:
        return None
    return _CombinedText(text="\n".join(segment.text for segment in segments), segments=segments)


def _parse_value(text: str, parser_cfg: ParserConfig, rule_id: str) -> tuple[str | None, list[str]]:
    errors: list[str] = []
    for pattern in sorted(parser_cfg.patterns, key=lambda entry: entry.priority):
        try:
            match = re.search(pattern.regex, text)
        except re.error as exc:
            logger.warning("Invalid regex in rule %s: %s (%s)", rule_id, pattern.regex, exc)
            errors.append(f"invalid_regex:{rule_id}:{pattern.regex}")
            continue
        if not match:
            continue
        value = match.group(1) if match.re.groups else match.group(0)
        value = (value or "").strip()
        if value:
            return value, errors
    if parser_cfg.fallback_to_full_text:
        return text, errors
    return None, errors
