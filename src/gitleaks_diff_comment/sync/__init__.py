"""Comment reconciliation and resilient delivery."""
