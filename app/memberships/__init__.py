"""
Membership plans and subscription reconciliation.

Models (import from memberships.models):
    - MembershipPlan: Purchasable plan per user type and tier
    - MembershipRecord: A user's membership (one active at a time)

Services (import from memberships.services):
    - SubscriptionReconciler: Checkout, upgrade, renewal, cancellation
"""
