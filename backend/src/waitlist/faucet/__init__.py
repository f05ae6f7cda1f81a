from waitlist.faucet.ledger import ClaimLedger, claim_ledger, format_amount, hash_ip

__all__ = ["ClaimLedger", "claim_ledger", "format_amount", "hash_ip"]
