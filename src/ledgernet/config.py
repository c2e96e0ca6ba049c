import re
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.networks import IPv4Network

from .exceptions import (
    ConfigParsingError,
    ConfigFileMissingError,
    ConfigValidationError,
)


logger = logging.getLogger(__name__)

# Docker accepts [a-zA-Z0-9][a-zA-Z0-9_.-]* for container and network names
_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


class ImageSpecModel(BaseModel):
    """
        Class Config-Validation Model describe one container of a node
    """
    image: str
    config: Dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(extra="forbid")

    @field_validator("image")
    @classmethod
    def check_image_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("image reference must not be empty")
        return value.strip()

    @field_validator("config", mode="before")
    @classmethod
    def none_config_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class NodeModel(BaseModel):
    """
        Class Config-Validation Model describe `nodes[]`
    """
    ledger: ImageSpecModel = Field(validation_alias=AliasChoices("ledger", "quorum"))
    tx_manager: ImageSpecModel = Field(validation_alias=AliasChoices("tx_manager", "tx-manager"))
    model_config = ConfigDict(extra="forbid")


class ConsensusModel(BaseModel):
    """
        Class Config-Validation Model describe `consensus`
    """
    name: str
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("consensus name must not be empty")
        return value

    @field_validator("config", mode="before")
    @classmethod
    def none_config_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ConfigModel(BaseModel):
    """
        Class Config-Validation Model desribe top-level of the build file
    """
    name: str
    genesis: Optional[str] = None
    consensus: ConsensusModel
    nodes: List[NodeModel] = Field(min_length=1)
    inet: Optional[IPv4Network] = None
    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not _NAME_PATTERN.match(value):
            raise ValueError(
                f"name '{value}' must start with a letter or digit and contain only letters, digits, '_', '.' or '-'"
            )
        return value

    @model_validator(mode="after")
    def check_subnet_capacity(self) -> "ConfigModel":
        """Each node needs two addresses (tx manager + ledger node) besides the gateway."""
        if self.inet is not None:
            usable = self.inet.num_addresses - 3
            needed = 2 * len(self.nodes)
            if usable < needed:
                raise ValueError(
                    f"subnet {self.inet} has {max(usable, 0)} usable addresses, {needed} are needed for {len(self.nodes)} nodes"
                )
        return self


class Config:
    """
    Loads and validates the build file using Pydantic models.
    It is the sole gatekeeper for configuration.
    """
    def __init__(self, config_path: Union[str, Path]):
        self.path = Path(config_path)
        logger.info(f"Loading configuration from '{self.path}'...")
        raw_data = self._load_raw_config()

        logger.info("Validating configuration structure with Pydantic...")
        try:
            self.model = ConfigModel.model_validate(raw_data)
            logger.debug(f"Configuration model validated successfully: \n{self.model.model_dump_json(indent=2)}")
            logger.info("Configuration validation passed.")
        except ValidationError as e:
            raise ConfigValidationError(f"Configuration validation failed:\n{e}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Builds a Config without touching the filesystem."""
        config = cls.__new__(cls)
        config.path = None
        try:
            config.model = ConfigModel.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Configuration validation failed:\n{e}")
        return config

    def _load_raw_config(self) -> Dict[str, Any]:
        try:
            content = self.path.read_text(encoding="utf-8")
            config_data = yaml.safe_load(content)
            if not isinstance(config_data, dict):
                raise ConfigParsingError("Configuration file must be a YAML document containing a dictionary.")
            logger.debug(f"Successfully parsed YAML from '{self.path}'.")
            return config_data
        except FileNotFoundError:
            raise ConfigFileMissingError(f"Configuration file not found at: {self.path}")
        except yaml.YAMLError as e:
            raise ConfigParsingError(f"Error parsing YAML file: {e}")

    @property
    def name(self) -> str:
        return self.model.name

    @property
    def inet(self) -> Optional[str]:
        return str(self.model.inet) if self.model.inet else None

    @property
    def nodes(self) -> List[NodeModel]:
        return self.model.nodes

    @property
    def consensus(self) -> ConsensusModel:
        return self.model.consensus

    @property
    def genesis_path(self) -> Optional[Path]:
        """Base genesis document, resolved relative to the build file."""
        if not self.model.genesis:
            return None
        path = Path(self.model.genesis)
        if not path.is_absolute() and self.path is not None:
            path = self.path.parent / path
        return path
