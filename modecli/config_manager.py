#!/usr/bin/env python3
"""
Configuration system for modecli applications
Supports YAML files, CLI overrides, and programmatic access
"""

import yaml
import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from copy import deepcopy


SERVER_MODES = ("local", "tcp")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CliConfig:
	"""Prompt, banner and grammar selection"""
	prompt: str = "cli> "
	banner: Optional[str] = None
	version: str = "1.0.0"
	grammar_env: str = "ECLI_GRAMMAR"  # environment variable naming an alternate grammar document
	use_yaml: bool = False  # try grammar_file even when the environment variable is unset
	grammar_file: str = "grammar.yaml"

	def to_dict(self) -> Dict[str, Any]:
		"""Convert to dictionary for YAML serialization"""
		return {
			'prompt': self.prompt,
			'banner': self.banner,
			'version': self.version,
			'grammar_env': self.grammar_env,
			'use_yaml': self.use_yaml,
			'grammar_file': self.grammar_file
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any], defaults: Optional['CliConfig'] = None) -> 'CliConfig':
		"""Create from dictionary (YAML loading)"""
		base = defaults or cls()
		return cls(
			prompt=data.get('prompt', base.prompt),
			banner=data.get('banner', base.banner),
			version=str(data.get('version', base.version)),
			grammar_env=data.get('grammar_env', base.grammar_env),
			use_yaml=data.get('use_yaml', base.use_yaml),
			grammar_file=data.get('grammar_file', base.grammar_file)
		)


@dataclass
class ServerConfig:
	"""Where the CLI listens"""
	mode: str = "local"  # local, tcp
	host: str = "127.0.0.1"
	port: int = 2323

	def to_dict(self) -> Dict[str, Any]:
		return {
			'mode': self.mode,
			'host': self.host,
			'port': self.port
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
		return cls(
			mode=data.get('mode', 'local'),
			host=data.get('host', '127.0.0.1'),
			port=data.get('port', 2323)
		)


@dataclass
class StartupConfig:
	"""Commands replayed before the first prompt"""
	config_file: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {'config_file': self.config_file}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'StartupConfig':
		return cls(config_file=data.get('config_file'))


@dataclass
class LoggingConfig:
	"""Log verbosity and destination"""
	verbose: bool = False
	quiet: bool = False
	level: str = "INFO"
	log_file: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			'verbose': self.verbose,
			'quiet': self.quiet,
			'level': self.level,
			'log_file': self.log_file
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'LoggingConfig':
		return cls(
			verbose=data.get('verbose', False),
			quiet=data.get('quiet', False),
			level=str(data.get('level', 'INFO')).upper(),
			log_file=data.get('log_file')
		)

	def effective_level(self) -> int:
		if self.verbose:
			return logging.DEBUG
		if self.quiet:
			return logging.WARNING
		return getattr(logging, self.level, logging.INFO)


@dataclass
class ModeCliConfig:
	"""Main configuration container"""
	config_version: str = "1.0"
	cli: CliConfig = field(default_factory=CliConfig)
	server: ServerConfig = field(default_factory=ServerConfig)
	startup: StartupConfig = field(default_factory=StartupConfig)
	logging: LoggingConfig = field(default_factory=LoggingConfig)

	def to_dict(self) -> Dict[str, Any]:
		"""Convert to dictionary for YAML output"""
		return {
			'config_version': self.config_version,
			'cli': self.cli.to_dict(),
			'server': self.server.to_dict(),
			'startup': self.startup.to_dict(),
			'logging': self.logging.to_dict()
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any], defaults: Optional['ModeCliConfig'] = None) -> 'ModeCliConfig':
		"""Create from dictionary (YAML loading), missing sections keep their defaults"""
		config = deepcopy(defaults) if defaults else cls()

		if 'config_version' in data:
			config.config_version = str(data['config_version'])
		if 'cli' in data:
			config.cli = CliConfig.from_dict(data['cli'] or {}, config.cli)
		if 'server' in data:
			config.server = ServerConfig.from_dict(data['server'] or {})
		if 'startup' in data:
			config.startup = StartupConfig.from_dict(data['startup'] or {})
		if 'logging' in data:
			config.logging = LoggingConfig.from_dict(data['logging'] or {})

		return config


class ConfigurationManager:
	"""
	Manages configuration loading, merging, and validation
	"""

	def __init__(self, config_file: str = "modecli.yaml", defaults: Optional[ModeCliConfig] = None):
		self.config_file = config_file
		self.defaults = defaults or ModeCliConfig()
		self.config = deepcopy(self.defaults)
		self.config_file_path: Optional[Path] = None

		self.logger = logging.getLogger(__name__)

		# Standard config file locations (in order of preference)
		self.config_search_paths = [
			Path.cwd() / config_file,  # Current directory
			Path.cwd() / "config" / config_file,  # Config subdirectory
			Path.home() / ".config" / "modecli" / "config.yaml",  # User config
			Path("/etc/modecli/config.yaml"),  # System config
		]

	def load_config(self, config_file: Optional[str] = None) -> ModeCliConfig:
		"""
		Load configuration from file with fallback chain

		Args:
			config_file: Specific config file path, or None for auto-discovery

		Returns:
			Loaded configuration object
		"""
		if config_file:
			config_path = Path(config_file)
			if config_path.exists():
				self.config = self._load_yaml_file(config_path)
				self.config_file_path = config_path
				self.logger.info(f"Loaded config from: {config_path}")
			else:
				self.logger.warning(f"Config file not found: {config_path}")
				self.logger.info("Using default configuration")
		else:
			for path in self.config_search_paths:
				if path.exists():
					self.config = self._load_yaml_file(path)
					self.config_file_path = path
					self.logger.info(f"Auto-discovered config: {path}")
					break
			else:
				self.logger.info("No config file found, using defaults")

		return self.config

	def _load_yaml_file(self, file_path: Path) -> ModeCliConfig:
		"""Load configuration from YAML file"""
		try:
			with open(file_path, 'r') as f:
				yaml_data = yaml.safe_load(f) or {}
			if not isinstance(yaml_data, dict):
				self.logger.error(f"Config file {file_path} must contain a mapping")
				return deepcopy(self.defaults)
			return ModeCliConfig.from_dict(yaml_data, self.defaults)
		except (OSError, yaml.YAMLError) as e:
			self.logger.error(f"Error loading config file {file_path}: {e}")
			self.logger.info("Using default configuration")
			return deepcopy(self.defaults)

	def merge_cli_args(self, args: argparse.Namespace) -> ModeCliConfig:
		"""
		Merge command line arguments into configuration
		CLI arguments override config file values
		"""
		if getattr(args, 'prompt', None):
			self.config.cli.prompt = args.prompt
		if getattr(args, 'banner', None):
			self.config.cli.banner = args.banner
		if getattr(args, 'grammar', None):
			self.config.cli.grammar_file = args.grammar
			self.config.cli.use_yaml = True

		# Server settings
		if getattr(args, 'tcp', False):
			self.config.server.mode = "tcp"
		if getattr(args, 'port', None) is not None:
			self.config.server.port = args.port
			self.config.server.mode = "tcp"
		if getattr(args, 'host', None):
			self.config.server.host = args.host

		# Startup replay
		if getattr(args, 'startup_config', None):
			self.config.startup.config_file = args.startup_config

		# Logging settings
		if getattr(args, 'verbose', False):
			self.config.logging.verbose = True
		if getattr(args, 'quiet', False):
			self.config.logging.quiet = True
		if getattr(args, 'log_file', None):
			self.config.logging.log_file = args.log_file

		return self.config

	def save_config(self, file_path: Optional[str] = None) -> bool:
		"""
		Save current configuration to YAML file

		Args:
			file_path: Target file path, or None to use loaded file path

		Returns:
			True if saved successfully
		"""
		if file_path:
			target_path = Path(file_path)
		elif self.config_file_path:
			target_path = self.config_file_path
		else:
			target_path = Path(self.config_file)

		try:
			target_path.parent.mkdir(parents=True, exist_ok=True)

			with open(target_path, 'w') as f:
				f.write("# modecli configuration\n")
				f.write("# Generated configuration file\n")
				f.write(f"# Version: {self.config.config_version}\n\n")

				yaml.dump(self.config.to_dict(), f,
						 default_flow_style=False,
						 sort_keys=False,
						 indent=2)

			self.logger.info(f"Configuration saved to: {target_path}")
			return True

		except OSError as e:
			self.logger.error(f"Error saving config to {target_path}: {e}")
			return False

	def validate_config(self) -> tuple[bool, list[str]]:
		"""
		Validate configuration for common issues

		Returns:
			(is_valid, list_of_errors)
		"""
		errors = []

		if not self.config.cli.prompt:
			errors.append("Prompt must not be empty")

		if not self.config.cli.grammar_env:
			errors.append("grammar_env must name an environment variable")

		if self.config.server.mode not in SERVER_MODES:
			errors.append(f"Invalid server mode: {self.config.server.mode}. Must be 'local' or 'tcp'")

		if not isinstance(self.config.server.port, int) or not (1 <= self.config.server.port <= 65535):
			errors.append(f"Invalid listen port: {self.config.server.port}")

		if self.config.logging.level not in LOG_LEVELS:
			errors.append(f"Invalid log level: {self.config.logging.level}")

		if self.config.logging.verbose and self.config.logging.quiet:
			errors.append("verbose and quiet cannot both be set")

		return len(errors) == 0, errors

	def get_config(self) -> ModeCliConfig:
		"""Get current configuration"""
		return deepcopy(self.config)


def setup_logging(config: LoggingConfig) -> None:
	"""Configure the root logger from the logging section"""
	handlers = [logging.StreamHandler(sys.stderr)]
	if config.log_file:
		handlers.append(logging.FileHandler(config.log_file))

	logging.basicConfig(
		level=config.effective_level(),
		format='%(asctime)s %(levelname)s %(name)s: %(message)s',
		handlers=handlers,
		force=True
	)


def create_argument_parser(description: str = 'modecli command line interface'):
	"""Argument parser shared by modecli applications"""
	parser = argparse.ArgumentParser(
		description=description,
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  %(prog)s                                 # Interactive session on this terminal
  %(prog)s --tcp                           # Serve one client on 127.0.0.1:2323
  %(prog)s --port 5000                     # Serve one client on 127.0.0.1:5000
  %(prog)s -s startup.cfg                  # Replay a saved configuration first
  %(prog)s -g grammar.yaml                 # Use an edited/translated grammar
  %(prog)s -c my_config.yaml               # Use specific config file

Configuration:
  Configuration is loaded in this order (later overrides earlier):
  1. Built-in defaults
  2. Configuration file (YAML)
  3. Command line arguments

  Config file search order:
  - modecli.yaml (current directory)
  - config/modecli.yaml
  - ~/.config/modecli/config.yaml
  - /etc/modecli/config.yaml

  The environment variable named by cli.grammar_env (ECLI_GRAMMAR by
  default) selects an alternate grammar document at startup.
		"""
	)

	# Configuration file handling
	config_group = parser.add_argument_group('Configuration')
	config_group.add_argument(
		'-c', '--config',
		type=str,
		help='Configuration file path (YAML format)'
	)
	config_group.add_argument(
		'--save-config',
		type=str,
		metavar='FILE',
		help='Save current configuration to file and exit'
	)
	config_group.add_argument(
		'-s', '--startup-config',
		type=str,
		metavar='FILE',
		help='Command file replayed before the first prompt'
	)

	# CLI presentation
	cli_group = parser.add_argument_group('CLI')
	cli_group.add_argument(
		'--prompt',
		type=str,
		help='Base prompt'
	)
	cli_group.add_argument(
		'--banner',
		type=str,
		help='Banner shown when a session starts'
	)
	cli_group.add_argument(
		'-g', '--grammar',
		type=str,
		metavar='FILE',
		help='Alternate grammar document (YAML)'
	)

	# Network settings
	network_group = parser.add_argument_group('Network Settings')
	network_group.add_argument(
		'--tcp',
		action='store_true',
		help='Serve a single remote client instead of this terminal'
	)
	network_group.add_argument(
		'-p', '--port',
		type=int,
		help='TCP listen port (implies --tcp)'
	)
	network_group.add_argument(
		'--host',
		type=str,
		help='TCP listen address (default 127.0.0.1)'
	)

	# Logging
	log_group = parser.add_argument_group('Logging')
	log_group.add_argument(
		'-v', '--verbose',
		action='store_true',
		help='Debug logging'
	)
	log_group.add_argument(
		'-q', '--quiet',
		action='store_true',
		help='Warnings and errors only'
	)
	log_group.add_argument(
		'--log-file',
		type=str,
		metavar='FILE',
		help='Also write log records to FILE'
	)

	return parser


def setup_configuration(argv=None, defaults: Optional[ModeCliConfig] = None,
						description: str = 'modecli command line interface'
						) -> tuple[ModeCliConfig, bool, Optional[ConfigurationManager]]:
	"""
	Setup configuration system with CLI integration

	Args:
		argv: Command line arguments (None for sys.argv)
		defaults: Application defaults (prompt, banner, ...)

	Returns:
		(config_object, should_exit, config_manager)
	"""
	parser = create_argument_parser(description)
	args = parser.parse_args(argv)

	manager = ConfigurationManager(defaults=defaults)
	manager.load_config(args.config)
	config = manager.merge_cli_args(args)

	is_valid, errors = manager.validate_config()
	if not is_valid:
		print("Configuration errors:")
		for error in errors:
			print(f"  ✗ {error}")
		return config, True, None

	if args.save_config:
		if manager.save_config(args.save_config):
			print(f"Configuration saved to: {args.save_config}")
		return config, True, manager

	return config, False, manager
