"""Reference genome chromosome-length tables."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
import pandas as pd

from .ranges import normalize_chromosome


@dataclass(frozen=True)
class ReferenceGenome:
    """Ordered chromosome-length table for one genome build.

    Chromosome order is significant: genome tiling walks chromosomes in
    table order and window indices follow it.
    """

    build: str
    chromosomes: Tuple[Tuple[str, int], ...]

    # Ordered by decreasing length, as plotted in the genome distribution.
    HG19_CHROMOSOME_SIZES = (
        ("1", 249250621),
        ("2", 243199373),
        ("3", 198022430),
        ("4", 191154276),
        ("5", 180915260),
        ("6", 171115067),
        ("7", 159138663),
        ("X", 155270560),
        ("8", 146364022),
        ("9", 141213431),
        ("10", 135534747),
        ("11", 135006516),
        ("12", 133851895),
        ("13", 115169878),
        ("14", 107349540),
        ("15", 102531392),
        ("16", 90354753),
        ("17", 81195210),
        ("18", 78077248),
        ("20", 63025520),
        ("Y", 59373566),
        ("19", 59128983),
        ("22", 51304566),
        ("21", 48129895),
    )

    def __post_init__(self):
        if not self.chromosomes:
            raise ValueError(f"Reference genome {self.build} has no chromosomes")
        for chromosome, length in self.chromosomes:
            if length <= 0:
                raise ValueError(f"Chromosome {chromosome} has invalid length: {length}")

    @classmethod
    def hg19(cls) -> "ReferenceGenome":
        """Return the bundled hg19 / GRCh37 table."""
        return cls("hg19", cls.HG19_CHROMOSOME_SIZES)

    @classmethod
    def from_dict(cls, build: str, sizes: Dict[str, int]) -> "ReferenceGenome":
        """Create a table from a chromosome -> length mapping (insertion order kept)."""
        return cls(
            build,
            tuple((normalize_chromosome(c), int(length)) for c, length in sizes.items())
        )

    @classmethod
    def from_chrom_sizes(cls, path: Path, build: Optional[str] = None) -> "ReferenceGenome":
        """Load a table from a ``.fai`` index or UCSC ``chrom.sizes`` file.

        Only the first two columns are used.
        """
        path = Path(path)
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            usecols=[0, 1],
            names=["chromosome", "length"],
            dtype={"chromosome": str},
            comment="#"
        )
        if df.empty:
            raise ValueError(f"No chromosomes found in {path}")

        return cls(
            build or path.name.split(".")[0],
            tuple(
                (normalize_chromosome(row.chromosome), int(row.length))
                for row in df.itertuples(index=False)
            )
        )

    @property
    def names(self) -> List[str]:
        """Return chromosome names in table order."""
        return [c for c, _ in self.chromosomes]

    def length(self, chromosome: str) -> int:
        """Return the length of a chromosome."""
        chromosome = normalize_chromosome(chromosome)
        for name, length in self.chromosomes:
            if name == chromosome:
                return length
        raise KeyError(f"Chromosome {chromosome} not in reference {self.build}")

    def subset(self, chromosomes: Iterable[str]) -> "ReferenceGenome":
        """Restrict the table to some chromosomes, keeping table order."""
        wanted = {normalize_chromosome(c) for c in chromosomes}
        unknown = wanted - set(self.names)
        if unknown:
            raise KeyError(f"Chromosomes not in reference {self.build}: {sorted(unknown)}")
        return ReferenceGenome(
            self.build,
            tuple((c, length) for c, length in self.chromosomes if c in wanted)
        )

    def __len__(self) -> int:
        return len(self.chromosomes)


BUILTIN_REFERENCES = {
    "hg19": ReferenceGenome.hg19,
    "grch37": ReferenceGenome.hg19,
}


def get_reference(build: str) -> ReferenceGenome:
    """Look up a bundled reference genome by build name."""
    try:
        return BUILTIN_REFERENCES[build.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown genome build: {build}. Use one of {sorted(BUILTIN_REFERENCES)} "
            "or supply a chrom sizes file."
        )
