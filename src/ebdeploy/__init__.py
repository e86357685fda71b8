"""ebdeploy - Deploy application bundles to AWS Elastic Beanstalk.

ebdeploy reconciles a desired deployment (application, environment,
platform and version) against the current state of Elastic Beanstalk, then
follows the environment until the rollout settles or fails.

Main features:
- Idempotent create-or-update of application versions and environments
- Event-based early failure detection while waiting
- Health recovery checks after the rollout
- Bounded retry with exponential backoff for API calls
"""

from ebdeploy.config.loader import ConfigLoader
from ebdeploy.lib.errors import ConfigError, DeploymentError, EbDeployError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigLoader",
    "ConfigError",
    "DeploymentError",
    "EbDeployError",
]
