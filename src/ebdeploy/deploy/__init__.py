"""Deployment engine for Elastic Beanstalk environments.

This package contains the reconciler, the polling watchers and the helpers
they share: service clients, packaging, bucket naming and pipeline outputs.
"""

from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.pipeline import run_deployment

__all__ = ["DeploymentContext", "run_deployment"]
