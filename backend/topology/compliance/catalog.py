# backend/topology/compliance/catalog.py
"""
Rule Catalog - AwsSolutions compliance rules a deployment may need to waive.
"""

from topology.compliance.registry import ComplianceRule, RuleCategory, RuleRegistry
from topology.ir.base import NodeKind


# ============================================================
# NETWORK
# ============================================================

VPC7 = ComplianceRule(
    id="AwsSolutions-VPC7",
    name="VPC flow logs",
    description="The VPC does not have an associated Flow Log.",
    category=RuleCategory.NETWORK,
    applies_to=(NodeKind.NETWORK,),
    tags=("logging", "vpc"),
)


# ============================================================
# COMPUTE
# ============================================================

AS1 = ComplianceRule(
    id="AwsSolutions-AS1",
    name="Scaling cooldown",
    description="The Auto Scaling Group does not have a cooldown period.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("autoscaling",),
)

AS2 = ComplianceRule(
    id="AwsSolutions-AS2",
    name="Scaling health checks",
    description="The Auto Scaling Group does not have properly configured health checks.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("autoscaling", "health"),
)

AS3 = ComplianceRule(
    id="AwsSolutions-AS3",
    name="Scaling notifications",
    description="The Auto Scaling Group does not have notifications configured for all scaling events.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("autoscaling", "notifications"),
)

EC26 = ComplianceRule(
    id="AwsSolutions-EC26",
    name="EBS encryption",
    description="The resource creates one or more EBS volumes that have encryption disabled.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("encryption", "storage"),
)

EC28 = ComplianceRule(
    id="AwsSolutions-EC28",
    name="Detailed monitoring",
    description="The EC2 instance or Auto Scaling launch configuration does not have detailed monitoring enabled.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("monitoring",),
)

EC29 = ComplianceRule(
    id="AwsSolutions-EC29",
    name="Termination protection",
    description="The EC2 instance is not part of an ASG and has Termination Protection disabled.",
    category=RuleCategory.COMPUTE,
    applies_to=(NodeKind.COMPUTE_TIER,),
    tags=("availability",),
)


# ============================================================
# LOAD BALANCING
# ============================================================

ELB1 = ComplianceRule(
    id="AwsSolutions-ELB1",
    name="Classic load balancer",
    description="The CLB is used for incoming HTTP/HTTPS traffic. Use ALBs instead.",
    category=RuleCategory.LOAD_BALANCING,
    applies_to=(NodeKind.TRAFFIC_FRONT,),
    tags=("elb",),
)

ELB2 = ComplianceRule(
    id="AwsSolutions-ELB2",
    name="Load balancer access logs",
    description="The ELB does not have access logs enabled.",
    category=RuleCategory.LOAD_BALANCING,
    applies_to=(NodeKind.TRAFFIC_FRONT,),
    tags=("elb", "logging"),
)

ELB3 = ComplianceRule(
    id="AwsSolutions-ELB3",
    name="Connection draining",
    description="The CLB does not have connection draining enabled.",
    category=RuleCategory.LOAD_BALANCING,
    applies_to=(NodeKind.TRAFFIC_FRONT,),
    tags=("elb", "availability"),
)

ELB4 = ComplianceRule(
    id="AwsSolutions-ELB4",
    name="Cross-zone balancing",
    description="The CLB does not use at least two AZs with Cross-Zone Load Balancing enabled.",
    category=RuleCategory.LOAD_BALANCING,
    applies_to=(NodeKind.TRAFFIC_FRONT,),
    tags=("elb", "availability"),
)

ELB5 = ComplianceRule(
    id="AwsSolutions-ELB5",
    name="Secure listener",
    description="The CLB listener is not configured for secure (HTTPS or SSL) protocols for client to front-end communication.",
    category=RuleCategory.LOAD_BALANCING,
    applies_to=(NodeKind.TRAFFIC_FRONT,),
    tags=("elb", "encryption"),
)


# ============================================================
# SECURITY
# ============================================================

EC23 = ComplianceRule(
    id="AwsSolutions-EC23",
    name="Unrestricted inbound access",
    description="The Security Group allows for 0.0.0.0/0 or ::/0 inbound access.",
    category=RuleCategory.SECURITY,
    applies_to=(NodeKind.SECURITY_RULE, NodeKind.SECURITY_BOUNDARY, NodeKind.TRAFFIC_FRONT),
    tags=("ingress", "security-group"),
)

EC27 = ComplianceRule(
    id="AwsSolutions-EC27",
    name="Security group description",
    description="The Security Group does not have a description.",
    category=RuleCategory.SECURITY,
    applies_to=(NodeKind.SECURITY_RULE, NodeKind.SECURITY_BOUNDARY),
    tags=("security-group",),
)


RULE_CATALOG = [
    VPC7,
    AS1,
    AS2,
    AS3,
    EC26,
    EC28,
    EC29,
    ELB1,
    ELB2,
    ELB3,
    ELB4,
    ELB5,
    EC23,
    EC27,
]

OPEN_INGRESS_RULE_ID = EC23.id


def register_all_rules(registry: RuleRegistry) -> None:
    for rule in RULE_CATALOG:
        registry.register(rule)
