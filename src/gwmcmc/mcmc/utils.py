from ..error_handling import ConfigurationError
from ..settings import SAMPLER_DEFAULTS


def clean_config(mcmc_config):
    """
    Cleans the config dict and sets defaults.
    All config keys use lowercase with underscores.
    """
    mcmc_config = dict(mcmc_config)
    for key, default in SAMPLER_DEFAULTS.items():
        mcmc_config.setdefault(key, default)

    unknown = sorted(set(mcmc_config) - set(SAMPLER_DEFAULTS))
    if unknown:
        raise ConfigurationError(f"Unknown sampler option(s): {', '.join(unknown)}")

    return mcmc_config
