"""Main application entry point for ClinicFlow."""

import os
import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from pubsub import pub
from rich.console import Console

from . import __version__
from .config import ClinicFlowConfig
from .errors import ClinicFlowError
from .models.consultation import ConsultationState, ConsultationType
from .models.events import Notice
from .services.notice_publisher import NOTICE_TOPIC
from .services.orchestrator import ConsultationOrchestrator
from .ui.summary_screen import render_summary

logger = logging.getLogger(__name__)

TOKEN_ENV = "CLINICFLOW_TOKEN"

NOTICE_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


class ConsultationRunner:
    """Runs one consultation end to end from the terminal."""

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = ClinicFlowConfig(config_path)
        # Set up logging (override config with command line if specified)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.orchestrator: Optional[ConsultationOrchestrator] = None

    def init(self, appointment_id: str, patient_id: str,
             consultation_type: ConsultationType, token: Optional[str]) -> None:
        logger.info("Initializing consultation...")
        self.orchestrator = ConsultationOrchestrator.from_config(
            self.config,
            appointment_id=appointment_id,
            patient_id=patient_id,
            consultation_type=consultation_type,
            token_provider=lambda: token,
        )
        pub.subscribe(self._on_notice, NOTICE_TOPIC)

    def _on_notice(self, event: Notice) -> None:
        style = NOTICE_STYLES.get(event.level, "white")
        self.console.print(f"[{style}]{event.title}[/{style}]: {event.message}")

    async def run(self, duration: int, fee: Optional[str], extras: List[Tuple[str, str]]) -> bool:
        """Record, transcribe, bill. Returns True when billing completed."""
        orchestrator = self.orchestrator
        orchestrator.enter()

        if orchestrator.state is ConsultationState.AWAITING_START and duration > 0:
            orchestrator.start_recording()

        if orchestrator.state is ConsultationState.RECORDING:
            self.console.print(f"Recording for {duration}s...")
            await asyncio.sleep(duration)
            self.console.print(f"Recorded {orchestrator.formatted_duration}")
            await orchestrator.stop_recording()
        elif orchestrator.state is ConsultationState.AWAITING_START:
            orchestrator.skip_to_billing()

        if fee is not None:
            orchestrator.set_base_fee(fee)
        for description, amount in extras:
            orchestrator.add_line_item(description, amount)

        await orchestrator.submit_billing()

        render_summary(
            self.console,
            orchestrator.state,
            orchestrator.bill(),
            orchestrator.encounter,
            currency_symbol=orchestrator.currency_symbol,
            record_id=orchestrator.record_id,
        )
        return orchestrator.state is ConsultationState.COMPLETE

    def cleanup(self) -> None:
        if self.orchestrator is not None:
            self.orchestrator.teardown()
        try:
            pub.unsubscribe(self._on_notice, NOTICE_TOPIC)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")


CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'


def setup_logging(config: ClinicFlowConfig, level: str = "INFO") -> str:
    """Route logs to the configured file, and warnings to stdout if enabled.

    Returns:
        Absolute path of the log file
    """
    log_file_path = config.get_log_file_path()
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handlers: List[logging.Handler] = [file_handler]

    if config.get('logging.console_output', True):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level.upper())
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info(f"ClinicFlow {__version__} logging to {log_file_path} at {level.upper()}")
    logger.info(f"API base: {config.get_api_base_url()} "
                f"(timeout {config.get('api.timeout_seconds')}s), "
                f"currency: {config.get('billing.currency_symbol')}, "
                f"default fee: {config.get('billing.default_base_fee')}")
    return log_file_path


def parse_extra_fee(value: str) -> Tuple[str, str]:
    """Parse "Description=Amount" into its two parts."""
    description, sep, amount = value.rpartition("=")
    if not sep or not description.strip():
        raise argparse.ArgumentTypeError(f"Expected Description=Amount, got '{value}'")
    return description.strip(), amount.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ClinicFlow - record, transcribe and bill one consultation"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config)"
    )

    parser.add_argument("--appointment-id", required=True, help="Appointment identifier")
    parser.add_argument("--patient-id", required=True, help="Patient identifier")

    parser.add_argument(
        "--type",
        dest="consultation_type",
        choices=[t.value for t in ConsultationType],
        default=ConsultationType.OFFLINE.value,
        help="ONLINE consultations start recording automatically (default: OFFLINE)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Seconds to record; 0 skips recording (default: 10)"
    )

    parser.add_argument("--fee", type=str, help="Consultation fee (default: from config)")

    parser.add_argument(
        "--extra",
        type=parse_extra_fee,
        action="append",
        default=[],
        help="Extra fee as Description=Amount; may be repeated"
    )

    parser.add_argument(
        "--token",
        type=str,
        default=os.environ.get(TOKEN_ENV),
        help=f"Bearer token (default: ${TOKEN_ENV})"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="ClinicFlow v0.1.0"
    )
    return parser


def main() -> None:
    """Main entry point for ClinicFlow."""
    args = build_parser().parse_args()

    runner = ConsultationRunner(args.config, args.log_level)
    try:
        runner.init(
            args.appointment_id,
            args.patient_id,
            ConsultationType(args.consultation_type),
            args.token,
        )
        completed = asyncio.run(runner.run(args.duration, args.fee, args.extra))
    except KeyboardInterrupt:
        print("\nConsultation abandoned")
        completed = False
    except ClinicFlowError as e:
        print(f"Error: {e.reason}")
        logging.error(f"Application error: {e.reason}")
        completed = False
    finally:
        runner.cleanup()

    sys.exit(0 if completed else 1)


if __name__ == "__main__":
    main()
