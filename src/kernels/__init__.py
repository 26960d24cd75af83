"""
Kernel layer.

Integer-only arithmetic kernels shared by the pricing and reward code.
"""
