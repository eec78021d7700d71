"""Calendar threshold classification and priority escalation."""
