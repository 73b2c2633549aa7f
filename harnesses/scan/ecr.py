"""Interactive harness: snapshot a live ECR registry to JSON.

You will need AWS credentials for the region (environment, profile, or
instance role) with ecr:DescribeRepositories and ecr:DescribeImages.
The snapshot can be replayed with ``ecr-reaper --input-file``.
"""

import sys
from pathlib import Path

from ecr_reaper.storage.ecr import ECRClient

region = sys.argv[1] if len(sys.argv) > 1 else "us-east-1"
output = Path(f"{region}.contents.json")

c = ECRClient(region)
c.connect()
c.dump_images(output)
print(f"Wrote {output}")
