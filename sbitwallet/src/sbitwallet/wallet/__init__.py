"""
Wallet-side primitives: spendable outputs, coin selection and signing.
"""
