"""
Order Pricing Package

Pricing reconciliation and delivery-distance pricing for a retail checkout backoffice.
Resolves line item prices (size variants, discounts, bundles), audits and repairs
stored order totals, and quotes delivery charges from inferred road distance.
"""

__version__ = "1.0.0"
