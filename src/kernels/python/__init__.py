"""
Production Python kernels.

These modules are designed to be:
- deterministic (integer-only, checked u64/u128 widths),
- easy to audit (explicit intermediate variables),
- pure functions with typed results.
"""
