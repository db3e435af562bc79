"""Processing options for IDNA transforms.

Options follow the parameter names of UTS #46 section 4. They can be built
in code, taken from one of the presets, or read from the ``idna`` section of
a YAML configuration file:

    idna:
      check_hyphens: true
      use_std3_ascii_rules: false
      processing: nontransitional
"""

from dataclasses import dataclass, fields, replace
from typing import Any

import yaml
from fastmcp.utilities.logging import get_logger

from .exceptions import ConfigError
from .typedefs import ProcessingMode

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


@dataclass(frozen=True)
class IDNAConfig:
    """UTS #46 processing options.

    Attributes:
        check_hyphens (bool): Reject hyphen-minus at the start, the end, or in
            both the third and fourth positions of a label.
        check_bidi (bool): Apply the Bidi rule to Bidi domain names.
        check_joiners (bool): Apply the ContextJ rules to ZWJ and ZWNJ.
        use_std3_ascii_rules (bool): Only allow letters, digits and
            hyphen-minus among ASCII code points.
        verify_dns_length (bool): Enforce DNS label and name lengths in
            to_ascii.
        ignore_invalid_punycode (bool): Keep ACE labels that fail to decode
            instead of reporting them.
        processing (ProcessingMode): Deviation handling for to_ascii.
    """

    check_hyphens: bool = True
    check_bidi: bool = True
    check_joiners: bool = True
    use_std3_ascii_rules: bool = False
    verify_dns_length: bool = True
    ignore_invalid_punycode: bool = False
    processing: ProcessingMode = ProcessingMode.NONTRANSITIONAL

    @classmethod
    def default(cls) -> "IDNAConfig":
        return cls()

    @classmethod
    def most_strict(cls) -> "IDNAConfig":
        """The options assumed by Unicode's IdnaTestV2 conformance file."""
        return cls(use_std3_ascii_rules=True)

    @classmethod
    def most_lax(cls) -> "IDNAConfig":
        return cls(
            check_hyphens=False,
            check_bidi=False,
            check_joiners=False,
            use_std3_ascii_rules=False,
            verify_dns_length=False,
            ignore_invalid_punycode=True,
        )

    @property
    def transitional(self) -> bool:
        return self.processing is ProcessingMode.TRANSITIONAL

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "IDNAConfig":
        """Build options from a mapping, starting from the defaults.

        A ``preset`` key (``default``, ``most_strict`` or ``most_lax``)
        selects the base the remaining keys override.

        Raises:
            ConfigError: On unknown keys, presets or values.
        """
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"IDNA options must be a mapping, got {type(data).__name__}")
        data = dict(data or {})
        presets = {"default": cls.default, "most_strict": cls.most_strict, "most_lax": cls.most_lax}
        preset = data.pop("preset", "default")
        if preset not in presets:
            raise ConfigError(f"Unknown preset {preset!r}")
        base = presets[preset]()

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown IDNA options: {', '.join(unknown)}")

        if "processing" in data:
            try:
                data["processing"] = ProcessingMode(data["processing"])
            except ValueError:
                raise ConfigError(f"Unknown processing mode {data['processing']!r}") from None
        for name, value in data.items():
            if name != "processing" and not isinstance(value, bool):
                raise ConfigError(f"Option {name} must be true or false, got {value!r}")

        return replace(base, **data)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> IDNAConfig:
    """Load IDNA options from the ``idna`` section of a YAML file.

    A missing or unreadable file falls back to the default options.

    Args:
        config_path: Path to the configuration file.
            Defaults to "config/config.yaml"

    Raises:
        ConfigError: If the file parses but the ``idna`` section is invalid.
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.info("Config file %s not found, using default settings", config_path)
        return IDNAConfig.default()
    except (yaml.YAMLError, OSError) as e:
        logger.error("Error loading config: %s", e)
        return IDNAConfig.default()

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    idna_config = IDNAConfig.from_dict(config.get("idna"))
    logger.info("Loaded IDNA options from %s: %s", config_path, idna_config)
    return idna_config
