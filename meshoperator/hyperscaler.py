"""Detection of the hyperscaler a cluster runs on."""

from __future__ import annotations

import urllib.error
import urllib.request
from dataclasses import dataclass

AWS_METADATA_HOST = "http://169.254.169.254/latest/meta-data/"


@dataclass
class HyperscalerClient:
    """Queries the instance metadata endpoint to tell whether the cluster runs on AWS."""

    metadata_host: str = AWS_METADATA_HOST
    timeout: float = 1.0

    def is_aws(self) -> bool:
        """True when the metadata endpoint answers with HTTP 200."""
        try:
            with urllib.request.urlopen(self.metadata_host, timeout=self.timeout) as response:
                return response.status == 200
        except (urllib.error.URLError, OSError, ValueError):
            return False