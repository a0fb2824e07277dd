"""
Confidential Credit: credit scoring and loan matching over encrypted data.

1. Owners encrypt their financial attributes client-side
2. The oracle scores them homomorphically into an encrypted score
3. Lending pools match against the encrypted score with encrypted thresholds

No party but the data owner ever sees an input, the score or a loan amount.
"""

__version__ = "0.1.0"
