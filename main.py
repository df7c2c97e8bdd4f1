#!/usr/bin/env python3
"""CNV Caller Evaluation - Main Entry Point."""

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional
import sys
import yaml

from cnveval.config import EvaluationConfig
from cnveval.genomics.calls import CallDataset
from cnveval.genomics.loader import CallSetLoader
from cnveval.evaluation.calibration import QualityCalibrationBinner
from cnveval.evaluation.roc import ROCAccumulator
from cnveval.evaluation.sensitivity import DEFAULT_DIMENSIONS, DimensionalSensitivityBinner
from cnveval.evaluation.distribution import GenomeDistributionBinner
from cnveval.evaluation.samples import SampleAggregator


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def run_calibration(dataset: CallDataset, output_dir: Path, config: EvaluationConfig) -> None:
    """Write quality score calibration bins for every caller."""
    logger = logging.getLogger(__name__)
    logger.info("Showing qscore results")

    binner = QualityCalibrationBinner(
        max_freq=config.max_rare_freq,
        simulation_type=config.simulation_type,
        min_bin_count=config.min_bin_count
    )
    curves = binner.calibrate_all(dataset)

    for caller, curve in curves.items():
        output_file = output_dir / f"qscore_calibration.{caller}.tsv"
        curve.to_dataframe().to_csv(output_file, sep="\t", index=False)
        logger.info(f"Calibration for {caller} saved to {output_file}")


def run_roc(dataset: CallDataset, output_dir: Path, config: EvaluationConfig) -> None:
    """Write cumulative TP/FP counts for every caller."""
    logger = logging.getLogger(__name__)

    accumulator = ROCAccumulator(
        max_freq=config.max_rare_freq,
        size_range=config.size_filter(),
        target_range=config.target_filter(),
        simulation_type=config.simulation_type
    )
    result = accumulator.compute(dataset)

    output_file = output_dir / "roc_curves.tsv"
    result.to_dataframe().to_csv(output_file, sep="\t", index=False)

    summary_file = output_dir / "roc_summary.json"
    with open(summary_file, "w") as f:
        json.dump({"truth_count": result.truth_count, "callers": result.summarize()}, f, indent=2)
    logger.info(f"ROC curves saved to {output_file}")


def run_sensitivity(dataset: CallDataset, output_dir: Path, config: EvaluationConfig) -> None:
    """Write sensitivity by target count, targeted bp and CNV size."""
    logger = logging.getLogger(__name__)

    for name, dimension in DEFAULT_DIMENSIONS.items():
        binner = DimensionalSensitivityBinner.for_dimension(dimension, config.min_bin_count)
        result = binner.compute(dataset)

        output_file = output_dir / f"sensitivity_by_{name}.tsv"
        result.to_dataframe().to_csv(output_file, sep="\t", index=False)
        logger.info(f"{dimension.description} breakdown saved to {output_file}")


def run_distribution(
    dataset: CallDataset,
    output_dir: Path,
    config: EvaluationConfig,
    chromosomes: Optional[List[str]] = None
) -> None:
    """Write genome-wide call counts, and a finer drill-down for chosen chromosomes."""
    logger = logging.getLogger(__name__)
    reference = config.reference()
    rare_calls = dataset.rare_calls(config.max_rare_freq)

    binner = GenomeDistributionBinner(reference, config.window_size)
    distribution = binner.compute(rare_calls)
    output_file = output_dir / "genome_distribution.tsv"
    distribution.to_dataframe().to_csv(output_file, sep="\t", index=False)
    logger.info(f"Genome distribution saved to {output_file}")

    for chromosome in chromosomes or []:
        sub_binner = GenomeDistributionBinner(reference, config.drilldown_window_size)
        sub_distribution = sub_binner.compute(rare_calls, [chromosome])
        output_file = output_dir / f"genome_distribution.{chromosome}.tsv"
        sub_distribution.to_dataframe().to_csv(output_file, sep="\t", index=False)
        logger.info(
            f"{sub_distribution.axis_label(f'Position in Chromosome {chromosome}')} "
            f"saved to {output_file}"
        )


def run_sample_counts(dataset: CallDataset, output_dir: Path) -> None:
    """Write the number of calls per caller and sample."""
    logger = logging.getLogger(__name__)

    aggregator = SampleAggregator()
    counts = aggregator.calculate_counts(dataset.as_mapping())

    output_file = output_dir / "cnvs_by_sample.tsv"
    aggregator.to_dataframe(counts).to_csv(output_file, sep="\t")
    logger.info(f"Sample counts saved to {output_file}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Evaluate CNV callers against a truth set",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every analysis over two runs
  python main.py --input run1/cnv_calls.json run2/cnv_calls.json --output results/

  # ROC curves only, for 1kb-1Mb CNVs, with a custom config
  python main.py --mode roc --input cnv_calls.json --config config/default.yaml

  # Genome distribution with a drill-down into chromosome 7
  python main.py --mode distribution --input cnv_calls.json --chromosome 7
        """
    )

    parser.add_argument(
        "--mode",
        choices=["all", "calibration", "roc", "sensitivity", "distribution", "samples"],
        default="all",
        help="Analysis mode (default: all)"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        nargs="+",
        required=True,
        help="CNV call files (JSON or TSV), one per run"
    )

    parser.add_argument(
        "--run-ids",
        nargs="+",
        help="Run ids used as sample suffixes (default: parent directory names)"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("results"),
        help="Output directory (default: results/)"
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/default.yaml"),
        help="Configuration file (default: config/default.yaml)"
    )

    parser.add_argument(
        "--chromosome",
        action="append",
        help="Chromosome to drill down into (distribution mode, repeatable)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file path"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    args.output.mkdir(parents=True, exist_ok=True)

    try:
        config = {}
        if args.config.exists():
            config = load_config(args.config)
            logger.info(f"Loaded configuration from {args.config}")
        eval_config = EvaluationConfig.from_dict(config.get("evaluation"))

        logger.info(f"CNV Caller Evaluation - Mode: {args.mode}")
        logger.info(f"Simulation type: {eval_config.simulation_type.value}")

        dataset = CallSetLoader().load_runs(args.input, args.run_ids)

        if args.mode in ("all", "calibration"):
            run_calibration(dataset, args.output, eval_config)

        if args.mode in ("all", "roc"):
            run_roc(dataset, args.output, eval_config)

        if args.mode in ("all", "sensitivity"):
            run_sensitivity(dataset, args.output, eval_config)

        if args.mode in ("all", "distribution"):
            run_distribution(dataset, args.output, eval_config, args.chromosome)

        if args.mode in ("all", "samples"):
            run_sample_counts(dataset, args.output)

        logger.info("Evaluation completed successfully")

    except Exception as e:
        logger.error(f"Evaluation failed: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
