"""
Parallel generation of independent shape requests.

Each request is built and exported by its own worker with its own kernel,
so workers share no mutable state.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from protoforge.errors import InvalidParameterError, ProtoforgeError
from protoforge.kernel import TrimeshKernel, VolumeKernel
from protoforge.params import ShapeRequest
from protoforge.shapes import construct

logger = logging.getLogger(__name__)

KernelFactory = Callable[[], VolumeKernel]


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one request: the exported path, or the error that stopped it."""

    request: ShapeRequest
    path: Optional[Path] = None
    error: Optional[ProtoforgeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def generate_one(request: ShapeRequest, output_dir: Union[str, Path],
                 kernel_factory: KernelFactory = TrimeshKernel) -> Path:
    """Build one request and export it to ``<output_dir>/<name>.stl``."""
    kernel = kernel_factory()
    volume = construct(request.shape, request.params, kernel)
    return kernel.export_stl(volume, Path(output_dir) / f"{request.name}.stl")


def generate_batch(requests: Sequence[ShapeRequest], output_dir: Union[str, Path],
                   max_workers: Optional[int] = None,
                   kernel_factory: KernelFactory = TrimeshKernel) -> List[BatchResult]:
    """
    Build and export several requests concurrently.

    A failing request does not stop the others; its error is reported in
    the result list instead.

    Args:
        requests: Requests to build
        output_dir: Directory receiving the STL files
        max_workers: Worker count (None lets the executor decide)
        kernel_factory: Creates a fresh kernel per request

    Returns:
        One result per request, in request order
    """
    names = [r.name for r in requests]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise InvalidParameterError(f"Duplicate output names in batch: {', '.join(duplicates)}")

    logger.info("Generating %d shapes with max_workers=%s", len(requests), max_workers)
    results: List[Optional[BatchResult]] = [None] * len(requests)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(generate_one, request, output_dir, kernel_factory): index
            for index, request in enumerate(requests)
        }
        for future in as_completed(futures):
            index = futures[future]
            request = requests[index]
            try:
                results[index] = BatchResult(request, path=future.result())
            except ProtoforgeError as e:
                logger.error("Request '%s' failed: %s", request.name, e)
                results[index] = BatchResult(request, error=e)

    failed = sum(1 for r in results if not r.ok)
    logger.info("Batch finished: %d exported, %d failed", len(results) - failed, failed)
    return results
