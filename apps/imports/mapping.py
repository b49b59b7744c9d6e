"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Column mapping resolver. Proposes header to field
             mappings by similarity, applies saved configurations,
             reports conflicts and resolves template headers.
-------------------------------------------------------------------------
"""
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from apps.imports.models import MappingType
from apps.payroll.fields import DEFAULT_FIELD_HEADERS, PAYROLL_DISPLAY_FIELDS


CONFIDENCE_HIGH = 80
CONFIDENCE_MEDIUM = 50
CONFIDENCE_LOW = 20

EXACT_SCORE = 100
CONTAINS_SCORE = 75
# Similarity-only matches are scaled below a contains match
FUZZY_SCALE = 70

REQUIRED_FIELDS = ('employee_id', 'salary_month')


@dataclass(frozen=True)
class AliasEntry:
    """Known alternative header for a field (from ColumnAlias rows)."""
    database_field: str
    alias_name: str
    confidence_score: int


@dataclass
class ProposedMapping:
    excel_column: str
    database_field: str
    confidence_score: int
    mapping_type: str
    alternatives: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def confidence_level(self) -> str:
        return categorize_confidence(self.confidence_score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'excel_column': self.excel_column,
            'database_field': self.database_field,
            'confidence_score': self.confidence_score,
            'confidence_level': self.confidence_level,
            'mapping_type': self.mapping_type,
            'alternatives': self.alternatives,
        }


@dataclass
class MappingConflict:
    type: str
    excel_columns: List[str]
    message: str
    severity: str = 'error'
    database_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'database_field': self.database_field,
            'excel_columns': self.excel_columns,
            'message': self.message,
            'severity': self.severity,
        }


@dataclass
class DetectionResult:
    mapping: Dict[str, ProposedMapping]
    detected_columns: List[str]
    unmapped_columns: List[str]
    conflicts: List[MappingConflict]

    @property
    def confidence_summary(self) -> Dict[str, int]:
        summary = {'high_confidence': 0, 'medium_confidence': 0, 'low_confidence': 0,
                   'manual_required': len(self.unmapped_columns)}
        for proposal in self.mapping.values():
            summary[f"{proposal.confidence_level}_confidence"] += 1
        return summary

    @property
    def success(self) -> bool:
        return not any(c.severity == 'error' for c in self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'mapping': {col: p.to_dict() for col, p in self.mapping.items()},
            'detected_columns': self.detected_columns,
            'unmapped_columns': self.unmapped_columns,
            'conflicts': [c.to_dict() for c in self.conflicts],
            'confidence_summary': self.confidence_summary,
        }


def normalize_header(text: Any) -> str:
    return ' '.join(str(text or '').lower().split())


def categorize_confidence(score: int) -> str:
    if score >= CONFIDENCE_HIGH:
        return 'high'
    if score >= CONFIDENCE_MEDIUM:
        return 'medium'
    return 'low'


def calculate_confidence(excel_column: str, target: str) -> Tuple[int, str]:
    """
    Score how well a header matches a target name.

    Returns:
        (score, mapping_type): 100/exact for equal text, 75/fuzzy when
        one contains the other, otherwise a scaled similarity ratio.
    """
    a = normalize_header(excel_column)
    b = normalize_header(target)
    if not a or not b:
        return 0, MappingType.FUZZY
    if a == b:
        return EXACT_SCORE, MappingType.EXACT
    if a in b or b in a:
        return CONTAINS_SCORE, MappingType.FUZZY
    ratio = SequenceMatcher(None, a, b).ratio()
    return int(round(ratio * FUZZY_SCALE)), MappingType.FUZZY


def _field_candidates(
    header: str,
    fields: Sequence[str],
    field_labels: Dict[str, str],
    aliases: Iterable[AliasEntry]
) -> List[Tuple[str, int, str]]:
    """Best (field, score, type) per field for one header, best first."""
    best: Dict[str, Tuple[int, str]] = {}

    def _offer(field_name: str, score: int, mapping_type: str) -> None:
        if score > best.get(field_name, (-1, ''))[0]:
            best[field_name] = (score, mapping_type)

    for field_name in fields:
        for target in (field_name, field_labels.get(field_name, '')):
            score, mapping_type = calculate_confidence(header, target)
            _offer(field_name, score, mapping_type)

    normalized = normalize_header(header)
    for alias in aliases:
        if alias.database_field in fields and normalize_header(alias.alias_name) == normalized:
            _offer(alias.database_field, alias.confidence_score, MappingType.ALIAS)

    ranked = sorted(best.items(), key=lambda item: (-item[1][0], item[0]))
    return [(name, score, mapping_type) for name, (score, mapping_type) in ranked]


def auto_detect_mappings(
    headers: Sequence[str],
    fields: Optional[Sequence[str]] = None,
    field_labels: Optional[Dict[str, str]] = None,
    aliases: Iterable[AliasEntry] = (),
    min_confidence: int = CONFIDENCE_MEDIUM
) -> DetectionResult:
    """
    Propose a database field for each spreadsheet header.

    Each header is compared with every field's name, its default
    Vietnamese label and the saved aliases. The best candidate at or
    above min_confidence is proposed; the next two are returned as
    alternatives for the admin to choose from.

    Args:
        headers: Header cells from the uploaded file.
        fields: Candidate database fields; payroll fields by default.
        field_labels: Display label per field.
        aliases: Saved aliases.
        min_confidence: Lowest score that yields a proposal.
    """
    fields = list(fields or PAYROLL_DISPLAY_FIELDS)
    field_labels = field_labels if field_labels is not None else DEFAULT_FIELD_HEADERS
    aliases = list(aliases)

    mapping: Dict[str, ProposedMapping] = {}
    detected: List[str] = []
    unmapped: List[str] = []
    for header in headers:
        text = str(header or '').strip()
        if not text:
            continue
        detected.append(text)
        candidates = _field_candidates(text, fields, field_labels, aliases)
        if not candidates or candidates[0][1] < min_confidence:
            unmapped.append(text)
            continue
        best_field, best_score, best_type = candidates[0]
        mapping[text] = ProposedMapping(
            excel_column=text,
            database_field=best_field,
            confidence_score=best_score,
            mapping_type=best_type,
            alternatives=[
                {'field': name, 'score': score}
                for name, score, _ in candidates[1:3] if score >= CONFIDENCE_LOW
            ],
        )

    conflicts = validate_mapping({col: p.database_field for col, p in mapping.items()})
    return DetectionResult(mapping, detected, unmapped, conflicts)


def validate_mapping(mapping: Dict[str, str], required: Sequence[str] = REQUIRED_FIELDS) -> List[MappingConflict]:
    """
    Find conflicts in an {excel_column: database_field} mapping.

    A field mapped from several columns is a duplicate_mapping error;
    a required field mapped from no column is required_field_missing.
    """
    usage: Dict[str, List[str]] = {}
    for column, field_name in mapping.items():
        usage.setdefault(field_name, []).append(column)

    conflicts = []
    for field_name, columns in usage.items():
        if len(columns) > 1:
            conflicts.append(MappingConflict(
                type='duplicate_mapping',
                database_field=field_name,
                excel_columns=columns,
                message=f'Trường "{field_name}" được ánh xạ bởi nhiều cột Excel',
            ))
    for field_name in required:
        if field_name not in usage:
            conflicts.append(MappingConflict(
                type='required_field_missing',
                database_field=field_name,
                excel_columns=[],
                message=f'Thiếu cột cho trường bắt buộc "{field_name}"',
            ))
    return conflicts


def apply_configuration(headers: Sequence[str], field_mappings: Iterable[Tuple[str, str]]) -> Dict[int, str]:
    """
    Resolve a saved configuration against actual headers.

    Args:
        headers: Header cells from the file.
        field_mappings: (excel_column_name, database_field) pairs in order.

    Returns:
        {column_index: database_field}. An exact (case-insensitive)
        header match is preferred over a contains match.
    """
    normalized = [normalize_header(h) for h in headers]
    resolved: Dict[int, str] = {}
    pending = []
    for excel_column, field_name in field_mappings:
        target = normalize_header(excel_column)
        if not target:
            continue
        if target in normalized and normalized.index(target) not in resolved:
            resolved[normalized.index(target)] = field_name
        else:
            pending.append((target, field_name))

    for target, field_name in pending:
        for idx, header in enumerate(normalized):
            if idx in resolved or not header:
                continue
            if target in header or header in target:
                resolved[idx] = field_name
                break
    return resolved


@dataclass
class HeaderMappingResult:
    headers: Dict[str, str]
    mapped_count: int
    unmapped_fields: List[str]
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'headers': self.headers,
            'mapped_count': self.mapped_count,
            'unmapped_fields': self.unmapped_fields,
            'source': self.source,
        }


def resolve_template_headers(
    fields: Sequence[str],
    configuration: Optional[Iterable[Tuple[str, str]]] = None
) -> HeaderMappingResult:
    """
    Choose the header text written for each field in a template.

    Priority is the saved configuration, then the default Vietnamese
    header, then the field name itself.

    Args:
        fields: Fields to include, in column order.
        configuration: (excel_column_name, database_field) pairs.
    """
    configured: Dict[str, str] = {}
    for excel_column, field_name in configuration or ():
        configured.setdefault(field_name, excel_column)

    headers: Dict[str, str] = {}
    unmapped: List[str] = []
    from_config = 0
    for field_name in fields:
        if field_name in configured:
            headers[field_name] = configured[field_name]
            from_config += 1
        elif field_name in DEFAULT_FIELD_HEADERS:
            headers[field_name] = DEFAULT_FIELD_HEADERS[field_name]
        else:
            headers[field_name] = field_name
            unmapped.append(field_name)

    if from_config:
        source = 'configuration'
    elif len(unmapped) < len(fields):
        source = 'default'
    else:
        source = 'fallback'
    return HeaderMappingResult(headers, len(fields) - len(unmapped), unmapped, source)
