"""
Response shapes for schema-constrained generation.

Each shape is declared once as a pydantic model. `response_schema()` derives
the provider-facing JSON schema from the model, and the decoded response is
validated against the same model, so the service request and the boundary
check can never drift apart.
"""

from enum import Enum
from typing import Any, Dict, List, Type

from pydantic import BaseModel, ConfigDict, Field

from backend.trialsight.context import TaskPriority


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class _Shape(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Document analysis
# ---------------------------------------------------------------------------

class TaskDescriptor(_Shape):
    title: str
    description: str
    priority: TaskPriority


class DocumentAnalysis(_Shape):
    summary: str = Field(description="Executive summary of the document content.")
    risk_score: int = Field(
        alias="riskScore", ge=0, le=100,
        description="A risk score from 0 to 100 based on compliance issues.",
    )
    risks: List[str] = Field(description="List of identified operational or compliance risks.")
    tasks: List[TaskDescriptor] = Field(
        description="Recommended follow-up tasks based on the findings.",
    )


# ---------------------------------------------------------------------------
# Risk simulation
# ---------------------------------------------------------------------------

class RiskScenario(_Shape):
    category: str = Field(description="Category of risk (e.g., Operations, Safety, Recruitment).")
    risk_level: RiskLevel = Field(alias="riskLevel")
    description: str = Field(description="Detailed description of the specific risk scenario.")
    mitigation_strategy: str = Field(
        alias="mitigationStrategy",
        description="Actionable step to mitigate this risk.",
    )


class SimulationResult(_Shape):
    executive_summary: str = Field(
        alias="executiveSummary",
        description="A concise, high-level summary of the simulation outcome.",
    )
    overall_risk_score: int = Field(
        alias="overallRiskScore", ge=0, le=100,
        description="Calculated aggregate risk probability (0-100).",
    )
    scenarios: List[RiskScenario]


# ---------------------------------------------------------------------------
# Provider schema derivation
# ---------------------------------------------------------------------------

_TYPE_NAMES = {
    "object": "OBJECT",
    "string": "STRING",
    "integer": "INTEGER",
    "number": "NUMBER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
}


def response_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """Declarative schema for `model` in the generation service's dialect.

    Keeps type, description, enum, properties, required and items; numeric
    bounds are not expressible there and are enforced on validation instead.
    """
    raw = model.model_json_schema(by_alias=True)
    return _convert(raw, raw.get("$defs", {}))


def _convert(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    ref_holder = node
    if "allOf" in node and len(node["allOf"]) == 1:
        ref_holder = node["allOf"][0]
    if "$ref" in ref_holder:
        target = defs[ref_holder["$ref"].rsplit("/", 1)[-1]]
        converted = _convert(target, defs)
        if "description" in node:
            converted["description"] = node["description"]
        return converted

    out: Dict[str, Any] = {"type": _TYPE_NAMES[node["type"]]}
    description = node.get("description")
    if "minimum" in node and "maximum" in node and not description:
        description = f"Integer from {node['minimum']} to {node['maximum']}."
    if description:
        out["description"] = description
    if "enum" in node:
        out["format"] = "enum"
        out["enum"] = [str(v) for v in node["enum"]]
    if node["type"] == "object":
        out["properties"] = {
            name: _convert(prop, defs) for name, prop in node.get("properties", {}).items()
        }
        out["required"] = list(node.get("required", []))
    if node["type"] == "array":
        out["items"] = _convert(node["items"], defs)
    return out
