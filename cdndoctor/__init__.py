"""cdndoctor - diagnose CloudFront distribution misconfigurations."""

__version__ = "0.1.0"
