"""Interactive harness using preloaded data."""

from pathlib import Path
from tempfile import TemporaryDirectory

import yaml

from ecr_reaper.config import ReaperConfig
from ecr_reaper.services.reaper import Reaper

with TemporaryDirectory() as td:
    new_config = Path(td) / "config.yaml"
    support_dir = Path(__file__).parent.parent / "tests" / "support"
    config = yaml.safe_load((support_dir / "config.yaml").read_text())
    config["inputFile"] = str(support_dir / "ecr.contents.json")
    new_config.write_text(yaml.dump(config))

    cfg = ReaperConfig.from_file(new_config)

    reaper = Reaper(cfg)
    reaper.run()
    reaper.report()

    print("\nReaper application is in variable 'reaper'")
    print("-------------------------------------------\n")
