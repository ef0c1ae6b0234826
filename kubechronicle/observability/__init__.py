"""Logging and metrics for kubechronicle."""
