"""Audit configuration & tunable rules.

Rule constants that may evolve (report shape limits, retry policy) are kept as
module-level dictionaries so they can be adjusted without touching service
logic. Deployment values (credentials, lookback window, provider instance) are
read once into an immutable `AuditSettings` object which is passed explicitly
into the fetchers and the engine; nothing here opens a connection.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from delivery_audit.exceptions import ConfigurationError

# ------------------------------ Reconciliation ---------------------------- #
RECONCILIATION_SETTINGS: dict[str, int] = {
	"lookback_days": 30,
	"message_fetch_limit": 500,
	# Matched provider messages attached to each classified sale
	"max_attached_messages": 3,
	"excerpt_max_chars": 60,
	# Examples printed per problem category in the console summary
	"console_examples": 5,
	"report_schema_version": 1,
}

# ------------------------------ Evolution API ----------------------------- #
EVOLUTION_SETTINGS: dict[str, float | str] = {
	"timeout_seconds": 15.0,
	"connected_state": "open",
	"jid_suffix": "@s.whatsapp.net",
}

# --------------------------------- Backoff -------------------------------- #
BACKOFF_POLICY: dict[str, int | float] = {
	"base_seconds": 1,
	"factor": 2,          # Exponential factor
	"max_seconds": 10,
	"max_attempts": 3,
	"jitter_pct": 0.10,   # +/-10% jitter
}

# -------------------------------- Firestore ------------------------------- #
FIRESTORE_COLLECTIONS: dict[str, str] = {
	"sales": "vendas",
	"customers": "clientes",
}

DEFAULT_REPORT_PATH = "delivery-audit-report.json"
DEFAULT_PHONE_REPORT_PATH = "phone-audit-report.json"
DEFAULT_ENV_FILE = ".env.local"
NOT_CONFIGURED = "(not configured)"

PHONE_MATCH_STRATEGIES = ("suffix", "exact")


@dataclass(frozen=True)
class FirestoreCredentials:
	project_id: str | None = None
	client_email: str | None = None
	private_key: str | None = field(default=None, repr=False)

	@property
	def is_complete(self) -> bool:
		return bool(self.project_id and self.client_email and self.private_key)


@dataclass(frozen=True)
class EvolutionSettings:
	base_url: str = ""
	api_key: str = field(default="", repr=False)
	instance_name: str = ""
	timeout_seconds: float = float(EVOLUTION_SETTINGS["timeout_seconds"])

	@property
	def is_configured(self) -> bool:
		return bool(self.base_url and self.api_key and self.instance_name)


@dataclass(frozen=True)
class AuditSettings:
	"""Everything one audit run needs to know, resolved once at startup."""

	lookback_days: int = RECONCILIATION_SETTINGS["lookback_days"]
	message_fetch_limit: int = RECONCILIATION_SETTINGS["message_fetch_limit"]
	phone_match_strategy: str = "suffix"
	firestore: FirestoreCredentials = field(default_factory=FirestoreCredentials)
	evolution: EvolutionSettings = field(default_factory=EvolutionSettings)
	sales_collection: str = FIRESTORE_COLLECTIONS["sales"]
	customers_collection: str = FIRESTORE_COLLECTIONS["customers"]
	report_path: Path = Path(DEFAULT_REPORT_PATH)
	phone_report_path: Path = Path(DEFAULT_PHONE_REPORT_PATH)
	log_level: str = "INFO"
	log_file: str | None = None

	def __post_init__(self) -> None:
		if self.lookback_days <= 0:
			raise ConfigurationError(f"lookback_days must be positive, got {self.lookback_days}")
		if self.message_fetch_limit <= 0:
			raise ConfigurationError(f"message_fetch_limit must be positive, got {self.message_fetch_limit}")
		if self.phone_match_strategy not in PHONE_MATCH_STRATEGIES:
			raise ConfigurationError(
				f"Unknown phone match strategy {self.phone_match_strategy!r}; "
				f"expected one of {', '.join(PHONE_MATCH_STRATEGIES)}"
			)

	@property
	def provider_instance_label(self) -> str:
		return self.evolution.instance_name or NOT_CONFIGURED

	@classmethod
	def from_env(cls, env: Mapping[str, str] | None = None) -> "AuditSettings":
		env = os.environ if env is None else env

		def pick(*names: str) -> str | None:
			for name in names:
				value = env.get(name)
				if value is not None and value.strip():
					return value.strip()
			return None

		private_key = pick("FIREBASE_ADMIN_PRIVATE_KEY", "FIREBASE_PRIVATE_KEY")
		firestore = FirestoreCredentials(
			project_id=pick("FIREBASE_ADMIN_PROJECT_ID", "FIREBASE_PROJECT_ID"),
			client_email=pick("FIREBASE_ADMIN_CLIENT_EMAIL", "FIREBASE_CLIENT_EMAIL"),
			private_key=private_key.replace("\\n", "\n") if private_key else None,
		)
		evolution = EvolutionSettings(
			base_url=(pick("EVOLUTION_API_URL") or "").rstrip("/"),
			api_key=pick("EVOLUTION_API_KEY") or "",
			instance_name=pick("EVOLUTION_INSTANCE_NAME") or "",
			timeout_seconds=_parse_number(
				pick("EVOLUTION_TIMEOUT_SECONDS"), "EVOLUTION_TIMEOUT_SECONDS",
				float(EVOLUTION_SETTINGS["timeout_seconds"]), float,
			),
		)
		return cls(
			lookback_days=_parse_number(
				pick("LOOKBACK_DAYS", "DIAS_HISTORICO"), "LOOKBACK_DAYS",
				RECONCILIATION_SETTINGS["lookback_days"], int,
			),
			message_fetch_limit=_parse_number(
				pick("MESSAGE_FETCH_LIMIT", "LIMITE_MSGS"), "MESSAGE_FETCH_LIMIT",
				RECONCILIATION_SETTINGS["message_fetch_limit"], int,
			),
			phone_match_strategy=(pick("PHONE_MATCH_STRATEGY") or "suffix").lower(),
			firestore=firestore,
			evolution=evolution,
			sales_collection=pick("SALES_COLLECTION") or FIRESTORE_COLLECTIONS["sales"],
			customers_collection=pick("CUSTOMERS_COLLECTION") or FIRESTORE_COLLECTIONS["customers"],
			report_path=Path(pick("REPORT_PATH") or DEFAULT_REPORT_PATH),
			phone_report_path=Path(pick("PHONE_REPORT_PATH") or DEFAULT_PHONE_REPORT_PATH),
			log_level=(pick("LOG_LEVEL") or "INFO").upper(),
			log_file=pick("LOG_FILE"),
		)


def _parse_number(raw: str | None, name: str, default, cast):
	if raw is None:
		return default
	try:
		return cast(raw)
	except ValueError as exc:
		raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env_file: str | Path | None = DEFAULT_ENV_FILE) -> AuditSettings:
	"""Load `env_file` (if present) into the process environment, then read settings.

	Variables already exported in the environment win over the file.
	"""
	if env_file is not None and Path(env_file).is_file():
		load_dotenv(dotenv_path=env_file, override=False)
	return AuditSettings.from_env()


__all__ = [
	"RECONCILIATION_SETTINGS",
	"EVOLUTION_SETTINGS",
	"BACKOFF_POLICY",
	"FIRESTORE_COLLECTIONS",
	"DEFAULT_REPORT_PATH",
	"DEFAULT_PHONE_REPORT_PATH",
	"DEFAULT_ENV_FILE",
	"NOT_CONFIGURED",
	"PHONE_MATCH_STRATEGIES",
	"FirestoreCredentials",
	"EvolutionSettings",
	"AuditSettings",
	"load_settings",
]
