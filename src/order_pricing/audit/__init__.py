"""Audit subpackage - order validation, repair and batch reporting."""
from .validator import OrderValidator
from .repairer import OrderRepairer
from .report import AuditSummary, audit_orders, build_pricing_report

__all__ = ['OrderValidator', 'OrderRepairer', 'AuditSummary', 'audit_orders', 'build_pricing_report']
