"""Application bootstrap and state for the LoanLens terminal client."""
