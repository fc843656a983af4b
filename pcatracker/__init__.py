"""Rotated rectangle particle filter tracking with PCA DIFS + DFFS or template likelihoods."""
