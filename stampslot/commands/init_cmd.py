import pathlib
from textwrap import dedent

import yaml

from stampslot.config import GameConfig

SAMPLE_CLASSIFICATION = [
    {"code": "000", "label": "General works"},
    {"code": "123", "label": "Chinese philosophy"},
    {"code": "307", "label": "Sociology"},
    {"code": "913", "label": "Japanese fiction"},
]

README_QUICKSTART = dedent(
    """\
    # stampslot quickstart

    1) Check the config
       ```
       stampslot validate config.yaml
       ```
    2) Spin a few times against a save file
       ```
       stampslot spin --classification classification.yaml --config config.yaml --save save.json --count 3
       ```
    3) See album progress
       ```
       stampslot status --classification classification.yaml --save save.json
       ```
    """
)


def run(target_dir: str):
    p = pathlib.Path(target_dir)
    p.mkdir(parents=True, exist_ok=True)
    (p / "config.yaml").write_text(yaml.safe_dump(GameConfig().to_dict(), sort_keys=False), encoding="utf-8")
    (p / "classification.yaml").write_text(
        yaml.safe_dump(SAMPLE_CLASSIFICATION, allow_unicode=True, sort_keys=False), encoding="utf-8"
    )
    (p / "README_quickstart.md").write_text(README_QUICKSTART, encoding="utf-8")
    print(f"Initialized stampslot skeleton at: {p}")
    return 0
