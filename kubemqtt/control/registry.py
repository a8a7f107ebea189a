"""
Command Registry
================

Registry explícito de comandos MQTT disponibles.

- Registry explícito: solo se registran comandos soportados
- Validación temprana: error claro si el comando no existe
- Introspección: listar comandos disponibles
"""
from typing import Any, Callable, Dict, Set
import logging

logger = logging.getLogger(__name__)


class CommandNotAvailableError(Exception):
    """Comando no registrado."""
    pass


class CommandRegistry:
    """
    Registry de comandos MQTT.

    Usage:
        registry = CommandRegistry()
        registry.register('apply', self._apply, "Create or update resources")
        registry.register('delete', self._delete, "Delete resources")

        try:
            registry.execute('apply', body)
        except CommandNotAvailableError as e:
            logger.warning(str(e))
    """

    def __init__(self):
        self._commands: Dict[str, Callable[..., Any]] = {}
        self._descriptions: Dict[str, str] = {}

    def register(self, command: str, handler: Callable[..., Any], description: str = ""):
        """
        Registra un comando.

        Args:
            command: Nombre del comando (ej: 'apply', 'delete')
            handler: Función a ejecutar (recibe los args de execute)
            description: Descripción del comando para help/logging

        Note:
            Si comando ya existe, se sobrescribe con warning.
        """
        if command in self._commands:
            logger.warning(f"⚠️ Comando '{command}' ya registrado, sobrescribiendo")

        self._commands[command] = handler
        self._descriptions[command] = description
        logger.debug(f"📝 Comando registrado: '{command}' - {description}")

    def execute(self, command: str, *args: Any, **kwargs: Any) -> Any:
        """
        Ejecuta un comando.

        Returns:
            Resultado del handler

        Raises:
            CommandNotAvailableError: Si comando no está registrado
        """
        if command not in self._commands:
            available = ', '.join(sorted(self.available_commands))
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {available}"
            )

        handler = self._commands[command]
        logger.debug(f"⚙️ Ejecutando comando: '{command}'")
        return handler(*args, **kwargs)

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Dict[comando, descripción]"""
        return dict(self._descriptions)

    def __repr__(self) -> str:
        cmds = ', '.join(sorted(self.available_commands))
        return f"CommandRegistry({len(self._commands)} commands: {cmds})"
