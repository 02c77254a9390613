"""kuberun: run a single container command as a Kubernetes Job and print its output."""

__version__ = "0.1.0"
