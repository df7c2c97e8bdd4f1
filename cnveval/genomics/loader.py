"""Load caller results from files and merge run replicates."""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
import json
import logging
import re
import pandas as pd

from .calls import CallDataset, TRUTH_KEY

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["chr", "start", "end", "quality", "sample"]

# Reports embed the calls as a script: ``cnv_calls = {...};``
_JS_ASSIGNMENT = re.compile(r"^\s*(?:var\s+|let\s+|const\s+|window\.)?\w+\s*=\s*", re.S)


class CallSetLoader:
    """Load CNV calls keyed by caller from JSON or tab-separated files."""

    def __init__(self, run_suffix: bool = True):
        """Initialize loader.

        Args:
            run_suffix: Append ``-<run>`` to each sample id when merging runs,
                so replicates of a sample stay distinguishable.
        """
        self.run_suffix = run_suffix

    def load_json(self, path: Path) -> Dict[str, List[Dict[str, Any]]]:
        """Load caller -> records from a JSON file.

        A leading JavaScript assignment and a trailing semicolon are accepted.
        """
        text = Path(path).read_text()
        text = _JS_ASSIGNMENT.sub("", text, count=1).strip().rstrip(";")
        records = json.loads(text)
        if not isinstance(records, dict):
            raise ValueError(f"Expected an object keyed by caller in {path}")
        return records

    def load_table(self, path: Path) -> Dict[str, List[Dict[str, Any]]]:
        """Load caller -> records from a TSV (or CSV) with a ``caller`` column."""
        sep = "," if Path(path).suffix == ".csv" else "\t"
        df = pd.read_csv(path, sep=sep, dtype={"chr": str, "sample": str})
        return self.load_dataframe(df)

    def load_dataframe(self, df: pd.DataFrame) -> Dict[str, List[Dict[str, Any]]]:
        """Load caller -> records from a pandas DataFrame."""
        for col in ["caller"] + REQUIRED_COLUMNS:
            if col not in df.columns:
                raise ValueError(f"Missing required column: {col}")

        records: Dict[str, List[Dict[str, Any]]] = {}
        for caller, group in df.groupby("caller", sort=False):
            rows = group.drop(columns=["caller"]).to_dict(orient="records")
            records[str(caller)] = [
                {k: v for k, v in row.items() if not pd.isna(v)} for row in rows
            ]
        return records

    def load_file(self, path: Path) -> Dict[str, List[Dict[str, Any]]]:
        """Load one run, picking the reader from the file extension."""
        path = Path(path)
        if path.suffix in (".tsv", ".txt", ".csv"):
            return self.load_table(path)
        return self.load_json(path)

    def merge_runs(
        self,
        runs: Mapping[str, Mapping[str, List[Dict[str, Any]]]]
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Merge the results of several runs into one caller -> records map.

        Args:
            runs: Run id -> (caller -> records), in load order.

        Returns:
            Caller -> records, concatenated over runs in run order.
        """
        merged: Dict[str, List[Dict[str, Any]]] = {}
        for run, records in runs.items():
            for caller, caller_records in records.items():
                for record in caller_records:
                    record = dict(record)
                    if self.run_suffix:
                        record["sample"] = f"{record['sample']}-{run}"
                    merged.setdefault(caller, []).append(record)
        return merged

    def load_runs(
        self,
        paths: Sequence[Path],
        run_ids: Optional[Sequence[str]] = None
    ) -> CallDataset:
        """Load and merge run files into a dataset.

        Args:
            paths: One file per run.
            run_ids: Run ids used as sample suffixes; defaults to the parent
                directory name of each file.

        Returns:
            Dataset over all runs.
        """
        paths = [Path(p) for p in paths]
        if run_ids is None:
            run_ids = [p.parent.name or p.stem for p in paths]
        if len(run_ids) != len(paths):
            raise ValueError("Number of run ids does not match number of files")
        if len(set(run_ids)) != len(run_ids):
            raise ValueError(f"Duplicate run ids: {list(run_ids)}")

        runs = {}
        for run, path in zip(run_ids, paths):
            logger.info(f"Loading CNV calls for run {run} from {path}")
            runs[run] = self.load_file(path)

        merged = self.merge_runs(runs)
        if TRUTH_KEY not in merged:
            logger.warning("No truth set found in loaded calls")
        return CallDataset.from_records(merged)
