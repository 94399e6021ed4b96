"""
Deployment configuration for the devile-project web application.

This package contains everything needed to ship a release:
- EC2 discovery of the bastion host and application servers
- Per-environment overlays (staging, local bypass)
- Remote tasks for the puma supervisor unit and secrets refresh
- Release publishing over SSH through the bastion
"""

__version__ = "0.1.0"
