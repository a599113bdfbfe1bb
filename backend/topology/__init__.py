"""
Topology Builder

Assembles a validated, write-once resource graph for a web-application
deployment (network, autoscaled compute tiers, application and network
traffic fronts, compliance suppressions) and compiles it into a
provisioning-ready plan.
"""

__version__ = "0.1.0"
