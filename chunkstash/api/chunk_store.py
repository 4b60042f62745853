from typing import Dict, List, Optional, Set, Tuple

from chunkstash.api.config import ChunkStoreConfig
from chunkstash.chunk import (
    ChunkLayout,
    ChunkManifest,
    ChunkNode,
    child_key,
    chunk_key,
    group_keys,
    is_manifest_key,
    is_valid_logical_key,
    logical_key_of,
    manifest_key,
    split_value,
)
from chunkstash.exceptions import (
    ClearFailureException,
    NoSuchValueException,
    RetrieveFailureException,
    StoreFailureException,
)
from chunkstash.kv_store.kv_store_interface import KVStoreInterface
from chunkstash.progress_reporting.store_hooks import Observer, Severity, notify
from chunkstash.utils import logger
from chunkstash.utils.fn import do_parallel
from chunkstash.utils.timer import Timer


class ChunkStore:
    """
    Persists arbitrarily large string values into a KVStoreInterface that rejects values over an unknown size.

    A value is cut into `initial_fan_out` pieces stored at `<key>_chunk_<i>`. A piece the store rejects is bisected
    into `<node>_0` and `<node>_1` until every part fits, and each bisected node gets a `<node>_meta` marker holding the
    number of leaves below it. `<key>_meta` holds the total leaf count and is written last.

    Operations on the same logical key must not run concurrently; operations on different keys may.
    """

    def __init__(self, kv_store: KVStoreInterface, config: Optional[ChunkStoreConfig] = None, observer: Optional[Observer] = None):
        """
        :param kv_store: the primitive store holding every physical key
        :type kv_store: KVStoreInterface
        :param config: splitting and concurrency settings
        :type config: ChunkStoreConfig (optional)
        :param observer: default progress callback `(message, severity) -> None`
        :type observer: callable (optional)
        """
        self.kv_store = kv_store
        self.config = config or ChunkStoreConfig()
        self.observer = observer

    def _observer(self, observer: Optional[Observer]) -> Optional[Observer]:
        return observer if observer is not None else self.observer

    async def store(self, key: str, value: str, observer: Optional[Observer] = None) -> int:
        """
        Store value under key, replacing any previous value.

        :param key: logical key, must not end in `_meta` or look like a chunk key
        :param value: the value to store
        :return: number of leaf chunks written
        :raises StoreFailureException: when a fragment cannot be stored within `max_split_depth` bisections or
            when a marker or the manifest cannot be written
        """
        observer = self._observer(observer)
        if not is_valid_logical_key(key):
            raise ValueError(f"Invalid key {key!r}: keys must be non-empty and must not look like a chunk or manifest key")

        touched: List[str] = []
        with Timer(f"store {key}"):
            try:
                await self._discard(key, observer)
                total_chunks = await self._store_chunks(key, value, touched, observer)
                try:
                    await self.kv_store.set_item(manifest_key(key), ChunkManifest(total_chunks).to_json())
                except Exception as e:
                    raise StoreFailureException(f"Failed to write manifest {manifest_key(key)}: {e}") from e
            except StoreFailureException as e:
                e.key = key
                e.written_keys = list(touched)
                notify(observer, f'Failed to store "{key}": {e}', Severity.error)
                await self._remove_keys(touched + [manifest_key(key)], observer)
                raise
        notify(observer, f'Successfully stored "{key}" in {total_chunks} chunks', Severity.success)
        return total_chunks

    async def _try_set(self, node: ChunkNode) -> bool:
        try:
            await self.kv_store.set_item(node.key, node.fragment)
            return True
        except Exception as e:
            logger.fs.debug(f"[ChunkStore] set {node.key} ({len(node.fragment)} chars) failed: {e}")
            return False

    async def _store_chunks(self, key: str, value: str, touched: List[str], observer: Optional[Observer]) -> int:
        pieces = split_value(value, self.config.initial_fan_out)
        pending = [ChunkNode(chunk_key(key, i), piece) for i, piece in enumerate(pieces)]
        leaf_counts: Dict[str, int] = {}
        split_nodes: List[ChunkNode] = []
        total_chunks = 0

        n_round = 0
        while pending:
            touched.extend(node.key for node in pending)
            results = await do_parallel(self._try_set, pending, n=self.config.max_concurrency, desc=f"store {key} round {n_round}")
            failed = []
            for node, stored in results:
                if stored:
                    total_chunks += 1
                    for ancestor in node.ancestors():
                        leaf_counts[ancestor.key] = leaf_counts.get(ancestor.key, 0) + 1
                else:
                    failed.append(node)

            pending = []
            for node in failed:
                if len(node.fragment) < 2:
                    raise StoreFailureException(f"Store rejected the single character fragment {node.key}")
                if node.depth >= self.config.max_split_depth:
                    raise StoreFailureException(f"Failed to store {node.key} after {self.config.max_split_depth} splitting attempts")
                split_nodes.append(node)
                pending.extend(node.bisect())
            if failed:
                notify(observer, f'Splitting {len(failed)} chunks of "{key}" that did not fit', Severity.info)
            n_round += 1

        if split_nodes:
            markers = [(node.marker_key(), ChunkManifest(leaf_counts[node.key]).to_json()) for node in split_nodes]
            touched.extend(marker_key for marker_key, _ in markers)
            results = await do_parallel(
                lambda marker: self.kv_store.set_item(*marker), markers, n=self.config.max_concurrency, return_exceptions=True
            )
            failed_markers = [marker_key for (marker_key, _), result in results if isinstance(result, Exception)]
            if failed_markers:
                raise StoreFailureException(f"Failed to write split markers {', '.join(failed_markers)}")
        return total_chunks

    async def retrieve(self, key: str, observer: Optional[Observer] = None) -> str:
        """
        Read back a value stored with `store`.

        :raises NoSuchValueException: when no manifest exists for key
        :raises RetrieveFailureException: when the manifest, a marker or any chunk is missing or unreadable
        """
        observer = self._observer(observer)
        with Timer(f"retrieve {key}"):
            try:
                manifest = await self._read_manifest(key)
                notify(observer, f'Retrieving data for "{key}" ({manifest.total_chunks} chunks)', Severity.info)
                prefetched: Dict[str, str] = {}
                layout = await self._resolve_layout(key, manifest.total_chunks, prefetched=prefetched)
                fragments = await self._read_leaves(key, layout.leaves, prefetched)
            except RetrieveFailureException as e:
                notify(observer, f'Failed to retrieve data for "{key}": {e}', Severity.error)
                raise
        data = "".join(fragments)
        notify(observer, f'Successfully retrieved and recombined data for "{key}"', Severity.success)
        return data

    async def exists(self, key: str, observer: Optional[Observer] = None) -> bool:
        observer = self._observer(observer)
        try:
            await self._read_manifest(key)
        except NoSuchValueException:
            notify(observer, f'No value stored for "{key}"', Severity.info)
            return False
        notify(observer, f'Found a value stored for "{key}"', Severity.info)
        return True

    async def _read_manifest(self, key: str) -> ChunkManifest:
        try:
            payload = await self.kv_store.get_item(manifest_key(key))
        except Exception as e:
            raise RetrieveFailureException(f"Failed to read metadata for key {key}: {e}", key=key) from e
        if payload is None:
            raise NoSuchValueException(f"No metadata found for key {key}", key=key)
        try:
            return ChunkManifest.from_json(payload)
        except ValueError as e:
            raise RetrieveFailureException(f"Invalid metadata for key {key}: {e}", key=key) from e

    async def _read_marker(self, node_key: str) -> int:
        """Number of leaves below node_key, 1 when the node was stored without splitting."""
        payload = await self.kv_store.get_item(manifest_key(node_key))
        if payload is None:
            return 1
        try:
            total_chunks = ChunkManifest.from_json(payload).total_chunks
        except ValueError as e:
            raise RetrieveFailureException(f"Invalid split marker for {node_key}: {e}") from e
        if total_chunks < 2:
            raise RetrieveFailureException(f"Split marker for {node_key} claims {total_chunks} chunks")
        return total_chunks

    async def _read_markers(self, node_keys: List[str]) -> List[Tuple[str, int]]:
        results = await do_parallel(self._read_marker, node_keys, n=self.config.max_concurrency, return_exceptions=True)
        for node_key, result in results:
            if isinstance(result, RetrieveFailureException):
                raise result
            if isinstance(result, Exception):
                raise RetrieveFailureException(f"Failed to read split marker for {node_key}: {result}") from result
        return results

    async def _resolve_layout(self, key: str, total_chunks: int, prefetched: Optional[Dict[str, str]] = None) -> ChunkLayout:
        """
        Rebuild the split tree of key from its markers.

        With `prefetched`, unsplit top level pieces are read batch by batch and kept there, so a manifest that claims
        more chunks than were written fails at the first missing piece.
        """
        # top level pieces are read in batches until their leaf counts add up to the manifest total
        nodes: List[Tuple[str, int]] = []
        remaining = total_chunks
        index = 0
        while remaining > 0:
            batch = [chunk_key(key, i) for i in range(index, index + min(self.config.initial_fan_out, remaining))]
            accepted = []
            for node_key, count in await self._read_markers(batch):
                if remaining == 0:
                    break
                if count > remaining:
                    raise RetrieveFailureException(f"{node_key} holds {count} chunks but only {remaining} remain for {key}", key=key)
                accepted.append((node_key, count))
                remaining -= count
            if prefetched is not None:
                prefetched.update(await self._read_chunks(key, [node_key for node_key, count in accepted if count == 1]))
            nodes.extend(accepted)
            index += len(batch)

        # expand bisected nodes level by level, children replace their parent in place
        split_nodes = []
        while any(count > 1 for _, count in nodes):
            to_expand = [node_key for node_key, count in nodes if count > 1]
            child_counts = dict(await self._read_markers([child_key(node_key, side) for node_key in to_expand for side in (0, 1)]))
            expanded = []
            for node_key, count in nodes:
                if count == 1:
                    expanded.append((node_key, count))
                    continue
                left, right = child_key(node_key, 0), child_key(node_key, 1)
                if child_counts[left] + child_counts[right] != count:
                    raise RetrieveFailureException(
                        f"Split marker for {node_key} claims {count} chunks but its children hold "
                        f"{child_counts[left] + child_counts[right]}",
                        key=key,
                    )
                split_nodes.append(node_key)
                expanded.extend([(left, child_counts[left]), (right, child_counts[right])])
            nodes = expanded
        return ChunkLayout(leaves=[node_key for node_key, _ in nodes], split_nodes=split_nodes)

    async def _read_chunks(self, key: str, node_keys: List[str]) -> List[Tuple[str, str]]:
        results = await do_parallel(self.kv_store.get_item, node_keys, n=self.config.max_concurrency, return_exceptions=True)
        missing = []
        for node_key, result in results:
            if isinstance(result, Exception):
                raise RetrieveFailureException(f"Failed to read chunk {node_key}: {result}", key=key) from result
            if result is None:
                missing.append(node_key)
        if missing:
            raise RetrieveFailureException(f"Missing {len(missing)} chunks for {key}: {', '.join(missing)}", key=key)
        return results

    async def _read_leaves(self, key: str, leaves: List[str], prefetched: Dict[str, str]) -> List[str]:
        fragments = dict(prefetched)
        fragments.update(await self._read_chunks(key, [leaf_key for leaf_key in leaves if leaf_key not in fragments]))
        return [fragments[leaf_key] for leaf_key in leaves]

    async def list_keys(self, observer: Optional[Observer] = None) -> List[str]:
        """Logical keys that have a committed manifest."""
        observer = self._observer(observer)
        physical_keys = await self._list_physical_keys(observer)
        keys = sorted(logical_key_of(physical_key) for physical_key in physical_keys if is_manifest_key(physical_key))
        notify(observer, f"Found {len(keys)} stored values in {len(physical_keys)} keys", Severity.info)
        return keys

    async def _list_physical_keys(self, observer: Optional[Observer]) -> List[str]:
        try:
            return list(await self.kv_store.list_keys())
        except Exception as e:
            notify(observer, f"Failed to list keys: {e}", Severity.error)
            raise ClearFailureException(f"Failed to list keys: {e}") from e

    async def clear_all(self, observer: Optional[Observer] = None) -> int:
        """
        Remove every key in the store, grouped by logical key.

        :return: number of listed keys that were removed
        :raises ClearFailureException: when the keys cannot be listed. Failures to remove single keys are only reported.
        """
        observer = self._observer(observer)
        notify(observer, "Starting storage clearance...", Severity.info)
        with Timer("clear_all"):
            groups = group_keys(await self._list_physical_keys(observer))
            removed = await do_parallel(
                lambda group: self._clear_group(group[0], group[1], observer=observer),
                sorted(groups.items()),
                n=self.config.max_concurrency,
                return_args=False,
            )
        notify(observer, f"Storage cleared successfully, removed {sum(removed)} keys", Severity.success)
        return sum(removed)

    async def remove(self, key: str, observer: Optional[Observer] = None) -> int:
        """Remove one logical value and every key derived from it. Keys of other logical values are never touched."""
        observer = self._observer(observer)
        enumerated = group_keys(await self._list_physical_keys(observer)).get(key, set())
        removed = await self._clear_group(key, enumerated, probe_manifest=True, observer=observer)
        notify(observer, f'Removed "{key}" ({removed} keys)', Severity.success)
        return removed

    async def _discard(self, key: str, observer: Optional[Observer]):
        """
        Drop every key of the group of key before it is stored again, including chunks and markers of an earlier store
        that never committed its manifest.
        """
        try:
            enumerated = group_keys(await self.kv_store.list_keys()).get(key, set())
        except Exception as e:
            raise StoreFailureException(f"Failed to list the previous chunks of {key}: {e}") from e
        targets = enumerated | await self._derive_group_keys(key, observer)
        removed = await self._remove_keys(self._removal_order(key, targets), observer)
        leftover = enumerated - removed
        if leftover:
            raise StoreFailureException(f"Failed to discard {len(leftover)} previous keys of {key}: {', '.join(sorted(leftover))}")

    @staticmethod
    def _removal_order(key: str, physical_keys: Set[str]) -> List[str]:
        # the manifest goes first so a partially removed value reads as absent
        return sorted(physical_keys, key=lambda physical_key: (physical_key != manifest_key(key), physical_key))

    async def _clear_group(self, key: str, enumerated: Set[str], probe_manifest: bool = False, observer: Optional[Observer] = None) -> int:
        targets = set(enumerated)
        if probe_manifest or manifest_key(key) in enumerated:
            targets |= await self._derive_group_keys(key, observer)
        removed = await self._remove_keys(self._removal_order(key, targets), observer)
        return len(removed & enumerated)

    async def _derive_group_keys(self, key: str, observer: Optional[Observer]) -> Set[str]:
        try:
            manifest = await self._read_manifest(key)
        except NoSuchValueException:
            return set()
        except RetrieveFailureException as e:
            notify(observer, f'Could not read manifest of "{key}", removing listed keys only: {e}', Severity.error)
            return {key, manifest_key(key)}

        # the flat chunk range covers every top level piece even if the layout cannot be resolved
        derived = {key, manifest_key(key)}
        for i in range(manifest.total_chunks):
            derived.add(chunk_key(key, i))
            derived.add(manifest_key(chunk_key(key, i)))
        try:
            layout = await self._resolve_layout(key, manifest.total_chunks)
        except RetrieveFailureException as e:
            logger.fs.warning(f'[ChunkStore] could not resolve the layout of "{key}": {e}')
            return derived
        return derived | set(layout.physical_keys()) | set(layout.split_nodes)

    async def _remove_keys(self, keys: List[str], observer: Optional[Observer]) -> Set[str]:
        if len(keys) == 0:
            return set()
        try:
            await self.kv_store.remove_items(keys)
            return set(keys)
        except Exception as e:
            logger.fs.warning(f"[ChunkStore] removing {len(keys)} keys at once failed ({e}), removing them one by one")

        removed = set()
        for physical_key in keys:
            try:
                await self.kv_store.remove_items(physical_key)
                removed.add(physical_key)
            except Exception as e:
                notify(observer, f"Failed to remove {physical_key}: {e}", Severity.error)
        return removed
