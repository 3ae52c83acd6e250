"""Observation sets, ingestion into dense indices, and MovieLens loading."""

import hashlib
import logging
import os
import urllib.request
from dataclasses import dataclass
from typing import Any, FrozenSet, Hashable, Iterable, Iterator, List, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from .idmap import IdMap

logger = logging.getLogger(__name__)

MOVIELENS_BASE_URL = "https://files.grouplens.org/datasets/movielens/ml-100k"
MOVIELENS_FILES = {
    "u.item": "553841ebc7de3a0fd0d6b62a204ea30c1e651aacfb2814c7a6584ac52f2c5701",
    "u.data": "06416e597f82b7342361e41163890c81036900f418ad91315590814211dca490",
}


@dataclass(frozen=True)
class Rating:
    user_id: Hashable
    item_id: Hashable
    value: float


class Dataset:
    """Append-only, ordered collection of (user, item, value) observations."""

    def __init__(self, ratings: Iterable[Tuple[Any, Any, float]] = ()):
        self._data: List[Rating] = []
        self.extend(ratings)

    def add(self, user_id: Hashable, item_id: Hashable, value: float) -> None:
        self._data.append(Rating(user_id, item_id, float(value)))

    def extend(self, ratings: Iterable[Tuple[Any, Any, float]]) -> None:
        for user_id, item_id, value in ratings:
            self.add(user_id, item_id, value)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Rating]:
        return iter(self._data)

    def __getitem__(self, index: int) -> Rating:
        return self._data[index]

    def __repr__(self) -> str:
        return f"Dataset(size={len(self._data)})"

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        user_col: str = 'user_id',
        item_col: str = 'item_id',
        value_col: str = 'rating'
    ) -> 'Dataset':
        return cls(zip(
            df[user_col].tolist(),
            df[item_col].tolist(),
            df[value_col].tolist()
        ))

    def split(
        self,
        test_ratio: float = 0.2,
        random_state: int = 42
    ) -> Tuple['Dataset', 'Dataset']:
        """Split observations per user so every user keeps some training data."""
        rng = np.random.RandomState(random_state)

        by_user = {}
        for j, rating in enumerate(self._data):
            by_user.setdefault(rating.user_id, []).append(j)

        test_positions = set()
        for positions in by_user.values():
            if len(positions) < 5:
                continue

            n_test = max(1, int(len(positions) * test_ratio))
            chosen = rng.choice(positions, n_test, replace=False)
            test_positions.update(int(j) for j in chosen)

        train, test = Dataset(), Dataset()
        for j, rating in enumerate(self._data):
            target = test if j in test_positions else train
            target._data.append(rating)

        return train, test


@dataclass(frozen=True, eq=False)
class EncodedDataset:
    """Observations remapped to dense indices, in observation order."""
    user_map: IdMap
    item_map: IdMap
    user_idx: np.ndarray
    item_idx: np.ndarray
    values: np.ndarray
    rated: Tuple[FrozenSet[int], ...]

    @property
    def n_users(self) -> int:
        return len(self.user_map)

    @property
    def n_items(self) -> int:
        return len(self.item_map)

    def __len__(self) -> int:
        return len(self.values)


def encode(dataset: Iterable[Rating]) -> EncodedDataset:
    user_map, item_map = IdMap(), IdMap()
    user_idx, item_idx, values = [], [], []
    rated: List[set] = []

    for rating in dataset:
        u = user_map.add(rating.user_id)
        i = item_map.add(rating.item_id)

        if u == len(rated):
            rated.append(set())
        rated[u].add(i)

        user_idx.append(u)
        item_idx.append(i)
        values.append(rating.value)

    return EncodedDataset(
        user_map=user_map,
        item_map=item_map,
        user_idx=np.array(user_idx, dtype=np.int32),
        item_idx=np.array(item_idx, dtype=np.int32),
        values=np.array(values, dtype=np.float32),
        rated=tuple(frozenset(s) for s in rated)
    )


def _adjacency(
    rows: np.ndarray,
    cols: np.ndarray,
    data: np.ndarray,
    n_rows: int,
    n_cols: int
) -> csr_matrix:
    # Built from indptr directly so repeated (row, col) pairs stay separate.
    order = np.argsort(rows, kind='stable')
    indptr = np.zeros(n_rows + 1, dtype=np.int64)
    np.cumsum(np.bincount(rows, minlength=n_rows), out=indptr[1:])
    return csr_matrix(
        (data[order], cols[order], indptr),
        shape=(n_rows, n_cols)
    )


def build_confidence_matrices(
    encoded: EncodedDataset,
    alpha: float
) -> Tuple[csr_matrix, csr_matrix]:
    """
    Per-user and per-item confidence adjacency.

    Confidence c = 1 + alpha * value. Returns (user x item, item x user).
    """
    confidence = (1.0 + np.float32(alpha) * encoded.values).astype(np.float32)

    cui = _adjacency(
        encoded.user_idx, encoded.item_idx, confidence,
        encoded.n_users, encoded.n_items
    )
    ciu = _adjacency(
        encoded.item_idx, encoded.user_idx, confidence,
        encoded.n_items, encoded.n_users
    )
    return cui, ciu


def _sha256(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(1 << 16), b''):
            digest.update(chunk)
    return digest.hexdigest()


def download_movielens_100k(data_dir: str = "./data") -> str:
    extract_path = os.path.join(data_dir, "ml-100k")
    os.makedirs(extract_path, exist_ok=True)

    for filename, expected in MOVIELENS_FILES.items():
        dest = os.path.join(extract_path, filename)
        if os.path.exists(dest):
            continue

        url = f"{MOVIELENS_BASE_URL}/{filename}"
        logger.info("Downloading data from %s", url)
        tmp_path = dest + ".part"
        urllib.request.urlretrieve(url, tmp_path)

        checksum = _sha256(tmp_path)
        if checksum != expected:
            os.remove(tmp_path)
            raise ValueError(f"Bad checksum: {checksum}")

        os.replace(tmp_path, dest)

    return extract_path


def load_ratings(data_path: str) -> pd.DataFrame:
    ratings_file = os.path.join(data_path, "u.data")
    return pd.read_csv(
        ratings_file,
        sep='\t',
        names=['user_id', 'item_id', 'rating', 'timestamp'],
        encoding='latin-1'
    )


def load_items(data_path: str) -> pd.DataFrame:
    items_file = os.path.join(data_path, "u.item")
    return pd.read_csv(
        items_file,
        sep='|',
        encoding='latin-1',
        header=None,
        usecols=[0, 1],
        names=['item_id', 'title']
    )


def load_movielens(data_dir: str = "./data") -> Dataset:
    """MovieLens 100K keyed by integer user id and movie title."""
    data_path = download_movielens_100k(data_dir)
    ratings = load_ratings(data_path)
    items = load_items(data_path)

    titles = dict(zip(items['item_id'].tolist(), items['title'].tolist()))
    ratings['title'] = ratings['item_id'].map(titles)

    return Dataset.from_frame(ratings, item_col='title')
