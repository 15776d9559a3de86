import numpy as np

# Independent streams per pipeline step, so re-running one step with the
# same seed does not shift the draws of the others
CUSTOMER_STREAM = 1
LOAN_STREAM = 2
DEFAULT_STREAM = 3


def check_seed(seed):
    """Return the seed as an int, or None; numpy only accepts non-negative seeds"""
    if seed is None:
        return None
    seed = int(seed)
    if seed < 0:
        raise ValueError(f"seed must be a non-negative integer, got {seed}")
    return seed


def make_rng(seed=None, stream=0):
    """
    Build the generator a synthesis step draws from.
    seed=None gives fresh OS entropy (a differently randomized dataset per run).
    """
    seed = check_seed(seed)
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng([seed, stream])
