"""Response contracts for the two model requests.

These models are the single source of truth for each request: the JSON Schema
sent to the model, the instruction text embedded in the prompt and the
validation of the returned object are all derived from them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Final, get_args, get_origin

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo

from vibe_check.models.report import RiskLevel, Vulnerability

SCHEMA_VERSION: Final[str] = "1"


class AnalysisSummary(BaseModel):
    total_issues: int = Field(..., ge=0, description="total number of vulnerabilities found")
    critical_findings: list[str] = Field(
        default_factory=list, description="most critical security findings"
    )
    overall_risk: RiskLevel = Field(..., description="overall security risk level")


class SecurityAnalysisResponse(BaseModel):
    vulnerabilities: list[Vulnerability] = Field(
        ..., description="specific security issues found"
    )
    summary: AnalysisSummary = Field(..., description="overall assessment")


class RiskAssessment(BaseModel):
    overall_risk: RiskLevel = Field(..., description="overall security risk level")
    priority_areas: list[str] = Field(
        default_factory=list, description="areas that need immediate attention"
    )


class InsightResponse(BaseModel):
    insight: str = Field(
        ...,
        min_length=1,
        description="one cohesive narrative paragraph about the security posture",
    )
    risk_assessment: RiskAssessment = Field(
        ..., description="overall risk level and priority areas"
    )


def response_format(schema: type[BaseModel]) -> dict[str, Any]:
    """Build the ``response_format`` payload for a chat completion request."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": f"{schema.__name__}_v{SCHEMA_VERSION}",
            "schema": schema.model_json_schema(),
            "strict": False,
        },
    }


def _type_label(annotation: Any) -> str:
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return "one of " + ", ".join(f'"{member.value}"' for member in annotation)
    if get_origin(annotation) is list:
        (item,) = get_args(annotation) or (Any,)
        if isinstance(item, type) and issubclass(item, BaseModel):
            return "array of objects"
        return f"array of {_type_label(item)}s"
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return "object"
    if annotation is int:
        return "integer"
    if annotation is str:
        return "string"
    return getattr(annotation, "__name__", str(annotation))


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    if get_origin(annotation) is list:
        args = get_args(annotation)
        annotation = args[0] if args else None
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def _field_line(name: str, info: FieldInfo) -> str:
    label = _type_label(info.annotation)
    description = info.description or ""
    return f"{name} ({label}): {description}".rstrip(": ")


def describe_schema(schema: type[BaseModel]) -> str:
    """Render the instruction block describing the expected response shape.

    Args:
        schema: Response model of the request.

    Returns:
        Numbered list of top-level fields with their nested fields indented
        below, using the exact field names and enum values the validator
        accepts.
    """
    lines: list[str] = []
    for index, (name, info) in enumerate(schema.model_fields.items(), start=1):
        lines.append(f"{index}. **{_field_line(name, info)}**")
        nested = _nested_model(info.annotation)
        if nested is None:
            continue
        lead = "each with" if get_origin(info.annotation) is list else "with"
        lines[-1] += f", {lead}:"
        for child_name, child_info in nested.model_fields.items():
            lines.append(f"   - {_field_line(child_name, child_info)}")
    return "\n".join(lines)
