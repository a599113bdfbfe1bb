from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any, List, Literal

from topology.ir.compliance_ir import SuppressionRecord
from topology.ir.infra_ir import ANY_IPV4, DEFAULT_SUBNET_LAYOUT, SubnetGroup, SubnetRole


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubnetGroupSpec(_CamelModel):
    name: str
    role: SubnetRole
    cidr_mask: Optional[int] = None

    def to_group(self) -> SubnetGroup:
        return SubnetGroup(name=self.name, role=self.role, cidr_mask=self.cidr_mask)


class SuppressionSpec(_CamelModel):
    target_node_id: str
    rule_id: str
    justification: str = ""  # emptiness is rejected by the annotation pass, not here
    applies_to_children: bool = False

    def to_record(self) -> SuppressionRecord:
        return SuppressionRecord(
            target_node_id=self.target_node_id,
            rule_id=self.rule_id,
            justification=self.justification,
            applies_to_children=self.applies_to_children,
        )


def _default_layout() -> List[SubnetGroupSpec]:
    return [
        SubnetGroupSpec(name=g.name, role=g.role, cidr_mask=g.cidr_mask)
        for g in DEFAULT_SUBNET_LAYOUT
    ]


class BuildConfig(_CamelModel):
    """Declarative input of one deployment build."""

    network_cidr: str = "10.0.0.0/16"
    az_count: int = 2
    nat_gateways: Optional[int] = None  # defaults to az_count
    subnets: List[SubnetGroupSpec] = Field(default_factory=_default_layout)

    instance_class: str = "burstable3"
    instance_size: str = "micro"
    image_selector: str = "amazon-linux-2"
    min_capacity: int = 2
    max_capacity: Optional[int] = None
    tier_placement: SubnetRole = SubnetRole.PRIVATE_NAT

    http_port: int = 80
    application_ingress_cidr: str = ANY_IPV4

    bootstrap_path: Optional[str] = "scripts/install.sh"
    bootstrap_script: Optional[str] = None

    suppressions: List[SuppressionSpec] = Field(default_factory=list)

    def subnet_layout(self) -> List[SubnetGroup]:
        return [spec.to_group() for spec in self.subnets]

    def suppression_records(self) -> List[SuppressionRecord]:
        return [spec.to_record() for spec in self.suppressions]


class BuildRequest(BaseModel):
    config: BuildConfig = Field(default_factory=BuildConfig)
    dry_run: bool = False
    output_format: Literal["plan", "mermaid", "both"] = "both"


class BuildResponse(BaseModel):
    status: str
    outputs: Dict[str, str]
    warnings: List[str] = []
    validation: Dict[str, Any] = {}
    plan: Optional[Dict[str, Any]] = None
    mermaid: Optional[str] = None
