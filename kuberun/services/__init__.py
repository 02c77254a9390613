"""Services module for kuberun."""
