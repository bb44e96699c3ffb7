"""Lower-bound assembly built on the integral and transform layers."""
