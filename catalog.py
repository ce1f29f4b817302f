# catalog.py
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from config import config
from environment import OrreryEnvironment
from meteor_showers import MeteorShower
from physics_utils import InvalidOrbitalElements
from solarsystem import CelestialBody, KIND_SHOWER_PARENT, KIND_SHOWER_STREAM

ORBIT_PARAMS_KEY = 'orbitParams'
EXTRA_PARAMS_KEY = 'extraParams'
RENDER_PARAMS_KEY = 'renderParams'
SHOWER_CODE_KEY = 'Code'

class CatalogError(Exception):
    """Raised when a catalogue file cannot be read or is not a JSON object of bodies."""
    pass

def read_catalog(path: str) -> Dict[str, Any]:
    """
    Reads a JSON catalogue of orbital-element records.

    The file maps body names to records of the form
    `{"orbitParams": {...}, "extraParams": {...}, "renderParams": {...}}`;
    only `orbitParams` is required.

    Args:
        path (str): Path of the JSON file.

    Returns:
        Dict[str, Any]: The parsed catalogue, in file order.

    Raises:
        CatalogError: If the file cannot be opened, is not valid JSON, or its top
            level is not an object.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            catalog = json.load(f)
    except OSError as e:
        raise CatalogError(f"Cannot read catalogue '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalogue '{path}' is not valid JSON: {e}") from e

    if not isinstance(catalog, dict):
        raise CatalogError(f"Catalogue '{path}' must contain a JSON object, got {type(catalog).__name__}.")
    return catalog

def _split_entry(name: str, entry: Any) -> Optional[Tuple[Mapping, Mapping, Mapping]]:
    if not isinstance(entry, Mapping) or not isinstance(entry.get(ORBIT_PARAMS_KEY), Mapping):
        logging.warning(f"Skipping catalogue entry '{name}': no orbitParams.")
        return None
    extra = entry.get(EXTRA_PARAMS_KEY) or {}
    render = entry.get(RENDER_PARAMS_KEY) or {}
    if not isinstance(extra, Mapping) or not isinstance(render, Mapping):
        logging.warning(f"Skipping catalogue entry '{name}': extraParams/renderParams must be objects.")
        return None
    return entry[ORBIT_PARAMS_KEY], extra, render

def _prepare_body(environment: OrreryEnvironment, name: str, kind: str, entry: Any) -> Optional[CelestialBody]:
    parts = _split_entry(name, entry)
    if parts is None:
        return None
    orbit_params, extra, render = parts
    try:
        return environment.create_body(name, kind, orbit_params, extra, render)
    except InvalidOrbitalElements as e:
        logging.warning(f"Skipping {kind} '{name}' due to invalid orbital elements: {e}")
        return None

def build_bodies(environment: OrreryEnvironment, catalog: Mapping[str, Any], kind: str,
                 limit: Optional[int] = None) -> List[CelestialBody]:
    """Turns catalogue entries into prepared (untracked) bodies, skipping invalid ones."""
    limit = config.Catalog.MAX_BODIES_PER_KIND if limit is None else min(limit, config.Catalog.MAX_BODIES_PER_KIND)
    bodies: List[CelestialBody] = []
    for name, entry in catalog.items():
        if len(bodies) >= limit:
            logging.info(f"Reached the limit of {limit} {kind} bodies; ignoring the rest of the catalogue.")
            break
        body = _prepare_body(environment, name, kind, entry)
        if body is not None:
            bodies.append(body)
    return bodies

def build_showers(environment: OrreryEnvironment, streams: Mapping[str, Any],
                  parents: Mapping[str, Any]) -> List[MeteorShower]:
    """
    Groups meteoroid-stream orbits into showers by IAU code.

    Streams are curve-only. Each shower gets the first parent body whose
    `extraParams.Code` matches and whose elements are valid.

    Args:
        environment: Used to prepare bodies against the current clock.
        streams: Stream catalogue (entries need `extraParams.Code`).
        parents: Parent-body catalogue.

    Returns:
        List[MeteorShower]: Showers in order of first appearance, at most
        `config.Catalog.MAX_SHOWERS`.
    """
    parents_by_code: Dict[str, List[Tuple[str, Any]]] = {}
    for parent_name, parent_entry in parents.items():
        if not isinstance(parent_entry, Mapping):
            continue
        extra = parent_entry.get(EXTRA_PARAMS_KEY) or {}
        code = extra.get(SHOWER_CODE_KEY) if isinstance(extra, Mapping) else None
        if code is not None:
            parents_by_code.setdefault(code, []).append((parent_name, parent_entry))

    showers: Dict[str, MeteorShower] = {}
    for stream_name, stream_entry in streams.items():
        parts = _split_entry(stream_name, stream_entry)
        if parts is None:
            continue
        _, extra, _ = parts
        code = extra.get(SHOWER_CODE_KEY)
        if code is None:
            logging.warning(f"Skipping stream '{stream_name}': no shower Code.")
            continue
        if code not in showers and len(showers) >= config.Catalog.MAX_SHOWERS:
            logging.info(f"Reached the limit of {config.Catalog.MAX_SHOWERS} showers.")
            break

        stream = _prepare_body(environment, stream_name, KIND_SHOWER_STREAM, stream_entry)
        if stream is None:
            continue

        shower = showers.get(code)
        if shower is None:
            shower = MeteorShower(name=stream_name, code=code)
            showers[code] = shower
        shower.streams.append(stream)

        if shower.parent is None:
            for parent_name, parent_entry in parents_by_code.get(code, []):
                parent = _prepare_body(environment, parent_name, KIND_SHOWER_PARENT, parent_entry)
                if parent is not None:
                    shower.parent = parent
                    break
    return list(showers.values())

def load_catalog_into(environment: OrreryEnvironment, path: str, kind: str, limit: Optional[int] = None) -> int:
    """
    Reads a catalogue and tracks its bodies in the environment.

    Returns:
        int: Number of bodies added.

    Raises:
        CatalogError: If the file cannot be read.
    """
    bodies = build_bodies(environment, read_catalog(path), kind, limit)
    added = sum(1 for body in bodies if environment.track_body(body))
    logging.info(f"Loaded {added} {kind} bodies from '{path}'.")
    return added

def load_showers_into(environment: OrreryEnvironment, streams_path: str, parents_path: str) -> int:
    """Reads the stream and parent catalogues and tracks the resulting showers. Returns the shower count."""
    showers = build_showers(environment, read_catalog(streams_path), read_catalog(parents_path))
    for shower in showers:
        environment.add_shower(shower)
    logging.info(f"Loaded {len(showers)} meteor showers from '{streams_path}'.")
    return len(showers)

def _run_background_load(environment: OrreryEnvironment, token: int, label: str,
                         build: Callable[[], Tuple[List[CelestialBody], List[MeteorShower]]]):
    try:
        bodies, showers = build()
    except CatalogError as e:
        logging.error(f"Background load of {label} failed: {e}")
        return
    environment.complete_load(token, bodies, showers)

def start_background_load(environment: OrreryEnvironment, path: str, kind: str,
                          limit: Optional[int] = None) -> threading.Thread:
    """
    Loads a catalogue on a worker thread.

    The load token is taken before the thread starts; if the environment is torn
    down or reset before the worker finishes, its bodies are discarded.

    Returns:
        threading.Thread: The started (daemon) worker.
    """
    token = environment.begin_load()
    worker = threading.Thread(
        target=_run_background_load,
        args=(environment, token, f"'{path}'",
              lambda: (build_bodies(environment, read_catalog(path), kind, limit), [])),
        name=f"catalog-{kind}",
        daemon=True,
    )
    worker.start()
    return worker

def start_background_shower_load(environment: OrreryEnvironment, streams_path: str,
                                 parents_path: str) -> threading.Thread:
    """Like `start_background_load`, for the meteor-shower catalogues."""
    token = environment.begin_load()
    worker = threading.Thread(
        target=_run_background_load,
        args=(environment, token, f"'{streams_path}'",
              lambda: ([], build_showers(environment, read_catalog(streams_path), read_catalog(parents_path)))),
        name="catalog-showers",
        daemon=True,
    )
    worker.start()
    return worker
