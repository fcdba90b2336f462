"""Payments domain services: fees, authorization, orchestration, reconciliation."""
