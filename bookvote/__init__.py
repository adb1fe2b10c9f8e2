"""Single-event book cover vote: roster, ledger, durable mirror and live tally feed."""
