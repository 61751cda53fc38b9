"""Exceptions raised by the clustering core."""


class InvalidInputError(ValueError):
    """Input cannot be clustered (empty point set, bad k_max, bad labels, bad records)."""


class ClusteringFailedError(RuntimeError):
    """The clustering primitive could not produce labels/compactness for `k`."""

    def __init__(self, k: int, reason: str) -> None:
        super().__init__(f"k-means failed for k={k}: {reason}")
        self.k = k
        self.reason = reason

    def __reduce__(self):
        return (self.__class__, (self.k, self.reason))
