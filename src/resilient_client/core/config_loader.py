"""
Resilient Client - Config Loader Implementation
Charge la configuration du client depuis des fichiers YAML.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .config_validator import ConfigValidator
from .interfaces import ClientConfig, IConfigLoader, IConfigValidator


class ConfigIntegrityError(Exception):
    """Configuration absente, illisible ou invalide."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = issues or []
        super().__init__(message)


class ConfigLoader(IConfigLoader):
    """
    Chargement des profils de configuration `<configs_path>/<profile>.yaml`.

    Example:
        loader = ConfigLoader("config")
        config = await loader.load_config("production")
    """

    def __init__(
        self,
        configs_path: Union[str, Path] = "config",
        validator: Optional[IConfigValidator] = None,
    ):
        self.configs_path = Path(configs_path)
        self._validator = validator or ConfigValidator()

    async def load(self, profile: str) -> Dict[str, Any]:
        """
        Charge la config brute d'un profil.

        Args:
            profile: Nom du profil (fichier sans extension)

        Returns:
            Configuration sous forme de dictionnaire

        Raises:
            ConfigIntegrityError: Si fichier inexistant ou structure invalide
        """
        if not profile or not profile.strip():
            raise ConfigIntegrityError("Profile name cannot be empty")

        return await self.load_file(self.configs_path / f"{profile}.yaml")

    async def load_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        """
        Charge un fichier YAML de configuration.

        Raises:
            ConfigIntegrityError: Si fichier inexistant, YAML invalide ou
                racine autre qu'un objet
        """
        config_file = Path(path)
        if not config_file.exists():
            raise ConfigIntegrityError(f"Configuration not found: {config_file}")

        try:
            config = await asyncio.to_thread(self._read_yaml, config_file)
        except yaml.YAMLError as e:
            raise ConfigIntegrityError(f"YAML parsing error in {config_file}: {e}") from e
        except OSError as e:
            raise ConfigIntegrityError(f"Cannot read {config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigIntegrityError("Configuration root must be a YAML mapping")

        return config

    async def load_config(self, profile: str) -> ClientConfig:
        """
        Charge, valide et construit la configuration d'un profil.

        Raises:
            ConfigIntegrityError: Si au moins une erreur bloquante
        """
        raw = await self.load(profile)
        return self.parse(raw)

    def parse(self, raw: Dict[str, Any]) -> ClientConfig:
        """
        Valide une config brute et construit ClientConfig.

        Raises:
            ConfigIntegrityError: Avec la liste complète des erreurs bloquantes
        """
        result = self._validator.validate(raw)
        if not result.valid:
            details = "; ".join(f"{e.location}: {e.message}" for e in result.errors)
            raise ConfigIntegrityError(
                f"Invalid configuration: {details}", issues=list(result.errors)
            )
        return ClientConfig.from_dict(raw)

    @staticmethod
    def _read_yaml(path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
