import datetime
import time
import uuid
from pathlib import Path
from typing import Optional, Union

import numpy as np

def make_rng(seed: Optional[Union[int, np.random.Generator]] = None) -> np.random.Generator:
    """Return a numpy Generator; passes an existing Generator through untouched."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)

def parse_seed(seed_str: Optional[str]) -> Optional[int]:
    """
    Turn a ``--seed`` value into an engine seed.

    ``None`` keeps the config's seed, ``"random"`` draws one from the clock
    (folded into int32 so it survives a round trip through ``params.yml``),
    anything else must be an integer.
    """
    if seed_str is None:
        return None
    text = str(seed_str).strip()
    if text.lower() == "random":
        return time.time_ns() // 1_000_000 % (2**31)
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"--seed expects an integer or 'random', got {seed_str!r}") from None

def make_output_dir(command_name: str, base_output_dir=None) -> Path:
    """
    Create ``<base>/<command_name>/<timestamp>-<id>`` for one CLI invocation.

    The short random id keeps two runs started within the same second apart.
    """
    stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    out_dir = Path(base_output_dir or "outputs") / command_name / f"{stamp}-{uuid.uuid4().hex[:6]}"
    out_dir.mkdir(parents=True, exist_ok=False)
    return out_dir
