#!/usr/bin/env python3
"""
Invoice Emissions System - Main Entry Point.

This is the main entry point for the invoice emissions system.
It provides both a command-line interface and programmatic access
to the analysis pipeline.

Usage:
    Command Line:
        python main.py --input invoice.txt
        python main.py --input ./invoices/ --output report.json
        python main.py --input ./invoices/ --project heat_pump.yaml

    Python:
        from main import run_analysis
        report = run_analysis("invoices/")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager
from ecoinvoice.utils.logger import setup_logger_from_config, set_level, get_logger
from ecoinvoice.utils.helpers import ensure_directory
from ecoinvoice.utils.exceptions import EcoInvoiceError, InputFileNotFoundError, InvalidAssumptionError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list; defaults to sys.argv.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Emissions System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Analyze a single invoice:
        python main.py --input invoice.txt

    Analyze a directory and write a report:
        python main.py --input ./invoices/ --output report.json

    Evaluate a reduction project against the invoices:
        python main.py --input ./invoices/ --project heat_pump.yaml
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input file or directory containing OCR text of invoices"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the JSON report to this file instead of stdout"
    )

    # Processing options
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--project", "-p",
        type=str,
        default=None,
        help="YAML file with reduction project assumptions"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize the system with configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()

    if args.debug:
        set_level("DEBUG")
    elif args.quiet:
        set_level("WARNING")

    logger.info("=" * 60)
    logger.info("INVOICE EMISSIONS SYSTEM")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")

    return config


def load_project(path: str) -> Dict[str, Any]:
    """
    Load project assumptions from a YAML file.

    Raises:
        InputFileNotFoundError: If the file does not exist.
        InvalidAssumptionError: If the file is not a mapping.
    """
    project_path = Path(path)
    if not project_path.is_file():
        raise InputFileNotFoundError(str(project_path))

    with open(project_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidAssumptionError("project", str(project_path), f"invalid YAML: {e}")

    if not isinstance(data, dict):
        raise InvalidAssumptionError("project", str(project_path), "must be a mapping")
    return data


def evaluate_project(project: Dict[str, Any], analyses: List[Any]) -> Dict[str, Any]:
    """
    Evaluate a reduction project against processed invoices.

    The baseline is aggregated from the invoices unless the project file
    states baseline figures or savings overrides itself.

    Args:
        project: Project assumptions as loaded from YAML.
        analyses: InvoiceAnalysis objects of the baseline period.

    Returns:
        Dictionary with the baseline used and the project metrics.
    """
    from ecoinvoice.finance import FinancialMetricsEngine, ProjectAssumptions, build_baseline

    assumptions = ProjectAssumptions.from_dict(project)
    baseline = None

    stated = 'baseline_spend' in project or 'baseline_co2_kg' in project
    if not stated and not assumptions.uses_overrides:
        baseline = build_baseline(
            analyses,
            category=assumptions.category,
            months=assumptions.baseline_months,
        )
        assumptions = assumptions.with_baseline(baseline)

    metrics = FinancialMetricsEngine().project_metrics(assumptions)
    return {
        'name': assumptions.name,
        'baseline': baseline.to_dict() if baseline else None,
        'metrics': metrics.to_dict(),
    }


def run_analysis(
    input_path: str,
    project_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run the invoice analysis pipeline.

    This is the main programmatic entry point. Documents that fail are
    logged and listed in the report; the others are still analyzed.

    Args:
        input_path: Path to a text file or a directory of them.
        project_path: Optional YAML file with project assumptions.

    Returns:
        Report dictionary with documents, errors, carbon metrics,
        shadow price scenarios and, if requested, project metrics.

    Example:
        >>> report = run_analysis("invoices/")
        >>> report['carbon']['total_co2_kg']
        536.0
    """
    logger = get_logger(__name__)

    from ecoinvoice.pipeline import InvoicePipeline
    from ecoinvoice.finance import carbon_metrics, shadow_scenarios

    # Read the project first so a broken file fails before any work is done
    project = load_project(project_path) if project_path else None

    pipeline = InvoicePipeline()
    engine = pipeline.ocr_engine

    input_p = Path(input_path)
    if input_p.is_dir():
        files_to_process = list(engine.iter_directory(input_p))
        if not files_to_process:
            logger.warning(f"No supported files found in: {input_p}")
    else:
        files_to_process = [input_p]

    logger.info(f"Processing {len(files_to_process)} files...")

    analyses = []
    errors = []

    for file_path in files_to_process:
        logger.info(f"Processing: {file_path.name}")
        try:
            analyses.append(pipeline.process_file(file_path))
        except EcoInvoiceError as e:
            logger.error(f"Error processing {file_path.name}: {e}")
            errors.append({'source': str(file_path), 'error': str(e), 'details': e.details})

    carbon = carbon_metrics((a.header.total_amount, a.co2_kg) for a in analyses)
    scenarios = shadow_scenarios(carbon.total_co2_kg)

    report = {
        'documents': [a.to_dict() for a in analyses],
        'errors': errors,
        'carbon': carbon.to_dict(),
        'scenarios': [s.to_dict() for s in scenarios],
    }

    if project is not None:
        report['project'] = evaluate_project(project, analyses)

    return report


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_arguments(argv)

    try:
        initialize_system(args)
        logger = get_logger(__name__)

        report = run_analysis(args.input, project_path=args.project)
        output = json.dumps(report, indent=2, ensure_ascii=False)

        if args.output:
            output_path = Path(args.output)
            ensure_directory(output_path.parent)
            output_path.write_text(output + "\n", encoding='utf-8')
            logger.info(f"Report written to {output_path}")
        else:
            print(output)

        logger.info("=" * 60)
        logger.info(
            f"Analysis complete. {len(report['documents'])} documents, "
            f"{len(report['errors'])} errors."
        )
        logger.info("=" * 60)

        if report['errors'] and not report['documents']:
            return 1
        return 0

    except EcoInvoiceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
