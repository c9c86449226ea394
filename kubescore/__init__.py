"""Static analysis of Kubernetes manifests: parsing, Deployment and StatefulSet checks, and reports."""

__version__ = "0.1.0"