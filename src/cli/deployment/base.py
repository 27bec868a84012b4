"""Base deployer class with shared functionality."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from src.utils.console_like import ConsoleLike


class BaseDeployer(ABC):
    """Abstract base class for all deployers."""

    def __init__(self, console: ConsoleLike, project_root: Path):
        """Initialize the deployer.

        Args:
            console: Console for operator output
            project_root: Path to the project root directory
        """
        self.console = console
        self.project_root = project_root
        # GRIMOIRELAB_* overrides may live in .env
        load_dotenv(self.project_root / ".env", override=False)

    @abstractmethod
    def deploy(self, **kwargs: Any) -> Any:
        """Deploy the environment.

        Args:
            **kwargs: Environment-specific deployment options
        """
        pass

    @abstractmethod
    def teardown(self, **kwargs: Any) -> Any:
        """Tear down the environment.

        Args:
            **kwargs: Environment-specific teardown options
        """
        pass

    @abstractmethod
    def show_status(self, **kwargs: Any) -> None:
        """Display the current status of the deployment."""
        pass

    def success(self, message: str) -> None:
        self.console.ok(message)

    def error(self, message: str) -> None:
        self.console.error(message)

    def warning(self, message: str) -> None:
        self.console.warn(message)

    def info(self, message: str) -> None:
        self.console.info(message)
