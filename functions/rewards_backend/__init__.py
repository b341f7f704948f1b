"""
Backend package for the points-mall mini program.

This package provides a FastAPI application that keeps a catalog of
redeemable goods and a single site configuration (banner + rules) in
sync with the client, with a password-gated configuration write path.
"""
