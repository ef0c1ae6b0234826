"""kubechronicle: admission webhook that records and polices Kubernetes changes."""

__version__ = "0.1.0"
