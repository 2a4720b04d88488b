"""Kubernetes resource aliases and rendering for the convenience commands."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

from rich.table import Table

from ..output import age, as_map, get_int, get_string, new_table, render_table, to_json

RESOURCE_ALIASES: Dict[str, str] = {
    "hc": "hostedclusters",
    "np": "nodepools",
    "hcp": "hostedcontrolplanes",
    "deploy": "deployments",
    "sts": "statefulsets",
    "rs": "replicasets",
    "ds": "daemonsets",
    "svc": "services",
    "cm": "configmaps",
    "ep": "endpoints",
    "ns": "namespaces",
    "pvc": "persistentvolumeclaims",
    "pv": "persistentvolumes",
    "sa": "serviceaccounts",
    "po": "pods",
    "ev": "events",
    "no": "nodes",
    "pod": "pods",
    "deployment": "deployments",
    "statefulset": "statefulsets",
    "replicaset": "replicasets",
    "daemonset": "daemonsets",
    "service": "services",
    "configmap": "configmaps",
    "endpoint": "endpoints",
    "namespace": "namespaces",
    "node": "nodes",
    "event": "events",
    "serviceaccount": "serviceaccounts",
    "hostedcluster": "hostedclusters",
    "nodepool": "nodepools",
    "hostedcontrolplane": "hostedcontrolplanes",
    "persistentvolumeclaim": "persistentvolumeclaims",
    "persistentvolume": "persistentvolumes",
}


def expand_resource_type(resource_type: str) -> str:
    """Map short or singular resource names to their canonical plural form."""
    return RESOURCE_ALIASES.get(resource_type, resource_type)


# ----------------------------------------------------------------------
# Field helpers


def _meta(item: Any) -> Dict[str, Any]:
    return as_map(as_map(item).get("metadata"))


def condition_status(status: Dict[str, Any], condition_type: str) -> str:
    for condition in status.get("conditions") or []:
        condition = as_map(condition)
        if get_string(condition, "type") == condition_type:
            return get_string(condition, "status")
    return "Unknown"


def pod_ready_counts(status: Dict[str, Any]) -> Tuple[int, int]:
    containers = status.get("containerStatuses")
    if not isinstance(containers, list):
        return 0, 0
    ready = sum(1 for c in containers if as_map(c).get("ready") is True)
    return ready, len(containers)


def pod_restart_count(status: Dict[str, Any]) -> int:
    containers = status.get("containerStatuses")
    if not isinstance(containers, list):
        return 0
    return sum(get_int(as_map(c), "restartCount") for c in containers)


def pod_effective_status(status: Dict[str, Any]) -> str:
    """Status column the way kubectl derives it from container states."""
    phase = get_string(status, "phase")
    containers = status.get("containerStatuses")
    if not isinstance(containers, list) or not containers:
        init_containers = status.get("initContainerStatuses")
        if isinstance(init_containers, list):
            for i, ic in enumerate(init_containers):
                state = as_map(as_map(ic).get("state"))
                waiting = as_map(state.get("waiting"))
                if waiting:
                    reason = get_string(waiting, "reason")
                    return f"Init:{reason}" if reason else f"Init:{i}/{len(init_containers)}"
                terminated = as_map(state.get("terminated"))
                if terminated and get_int(terminated, "exitCode") != 0:
                    return "Init:Error"
        return phase

    for container in containers:
        state = as_map(as_map(container).get("state"))
        for key in ("waiting", "terminated"):
            reason = get_string(as_map(state.get(key)), "reason")
            if reason:
                return reason
    return phase


def node_roles(labels: Dict[str, Any]) -> str:
    prefix = "node-role.kubernetes.io/"
    roles = sorted(key[len(prefix):] for key in labels if key.startswith(prefix) and key[len(prefix):])
    return ",".join(roles) if roles else "<none>"


def sort_items(items: List[Any]) -> None:
    """Sort Kubernetes items in place by namespace, then name."""
    items.sort(key=lambda item: (get_string(_meta(item), "namespace"), get_string(_meta(item), "name")))


def is_cluster_scoped(items: List[Any]) -> bool:
    return all(not get_string(_meta(item), "namespace") for item in items)


# ----------------------------------------------------------------------
# Tables


def _pods(items: List[Any]) -> Table:
    table = new_table("NAMESPACE", "NAME", "READY", "STATUS", "RESTARTS", "AGE")
    for item in items:
        meta, status = _meta(item), as_map(as_map(item).get("status"))
        ready, total = pod_ready_counts(status)
        table.add_row(
            get_string(meta, "namespace"),
            get_string(meta, "name"),
            f"{ready}/{total}",
            pod_effective_status(status),
            str(pod_restart_count(status)),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _deployments(items: List[Any]) -> Table:
    table = new_table("NAMESPACE", "NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE")
    for item in items:
        meta = _meta(item)
        spec = as_map(as_map(item).get("spec"))
        status = as_map(as_map(item).get("status"))
        table.add_row(
            get_string(meta, "namespace"),
            get_string(meta, "name"),
            f"{get_int(status, 'readyReplicas')}/{get_int(spec, 'replicas')}",
            str(get_int(status, "updatedReplicas")),
            str(get_int(status, "availableReplicas")),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _hostedclusters(items: List[Any]) -> Table:
    table = new_table("NAMESPACE", "NAME", "VERSION", "PROGRESS", "AVAILABLE", "AGE")
    for item in items:
        meta = _meta(item)
        spec = as_map(as_map(item).get("spec"))
        status = as_map(as_map(item).get("status"))
        version = get_string(as_map(spec.get("release")), "image") or "<none>"
        if len(version) > 40:
            version = version[:40] + "..."
        table.add_row(
            get_string(meta, "namespace"),
            get_string(meta, "name"),
            version,
            get_string(status, "progress"),
            condition_status(status, "Available"),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _services(items: List[Any]) -> Table:
    table = new_table("NAMESPACE", "NAME", "TYPE", "CLUSTER-IP", "AGE")
    for item in items:
        meta, spec = _meta(item), as_map(as_map(item).get("spec"))
        table.add_row(
            get_string(meta, "namespace"),
            get_string(meta, "name"),
            get_string(spec, "type"),
            get_string(spec, "clusterIP"),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _configmaps(items: List[Any]) -> Table:
    table = new_table("NAMESPACE", "NAME", "DATA", "AGE")
    for item in items:
        meta = _meta(item)
        table.add_row(
            get_string(meta, "namespace"),
            get_string(meta, "name"),
            str(len(as_map(as_map(item).get("data")))),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _namespaces(items: List[Any]) -> Table:
    table = new_table("NAME", "STATUS", "AGE")
    for item in items:
        meta = _meta(item)
        table.add_row(
            get_string(meta, "name"),
            get_string(as_map(as_map(item).get("status")), "phase"),
            age(get_string(meta, "creationTimestamp")),
        )
    return table


def _nodes(items: List[Any]) -> Table:
    table = new_table("NAME", "STATUS", "ROLES", "AGE", "VERSION")
    for item in items:
        meta = _meta(item)
        status = as_map(as_map(item).get("status"))
        ready = "Ready" if condition_status(status, "Ready") == "True" else "NotReady"
        table.add_row(
            get_string(meta, "name"),
            ready,
            node_roles(as_map(meta.get("labels"))),
            age(get_string(meta, "creationTimestamp")),
            get_string(as_map(status.get("nodeInfo")), "kubeletVersion"),
        )
    return table


def _events(items: List[Any]) -> Table:
    table = new_table("LAST SEEN", "TYPE", "REASON", "OBJECT", "MESSAGE")
    for item in items:
        event = as_map(item)
        involved = as_map(event.get("involvedObject"))
        last_seen = get_string(event, "lastTimestamp") or get_string(event, "eventTime")
        table.add_row(
            age(last_seen),
            get_string(event, "type"),
            get_string(event, "reason"),
            f"{get_string(involved, 'kind')}/{get_string(involved, 'name')}",
            get_string(event, "message"),
        )
    return table


_TABLES: Dict[str, Callable[[List[Any]], Table]] = {
    "pods": _pods,
    "deployments": _deployments,
    "hostedclusters": _hostedclusters,
    "services": _services,
    "configmaps": _configmaps,
    "namespaces": _namespaces,
    "nodes": _nodes,
    "events": _events,
}


def render_resource_table(data: Dict[str, Any], resource_type: str) -> str:
    """Render a ``get`` workflow result as a kubectl-style table."""
    items = data.get("items")
    if not isinstance(items, list):
        resource = data.get("resource")
        if not isinstance(resource, dict):
            return to_json(data)
        items = [resource]

    if not items:
        return f"No {resource_type} found."

    resource_type = expand_resource_type(resource_type)
    if resource_type != "events":
        items = list(items)
        sort_items(items)

    builder = _TABLES.get(resource_type)
    if builder is not None:
        return render_table(builder(items))

    if is_cluster_scoped(items):
        table = new_table("NAME", "AGE")
        for item in items:
            meta = _meta(item)
            table.add_row(get_string(meta, "name"), age(get_string(meta, "creationTimestamp")))
    else:
        table = new_table("NAMESPACE", "NAME", "AGE")
        for item in items:
            meta = _meta(item)
            table.add_row(
                get_string(meta, "namespace"),
                get_string(meta, "name"),
                age(get_string(meta, "creationTimestamp")),
            )
    return f"{render_table(table)}\n\n{len(items)} {resource_type} found."


def render_describe(data: Dict[str, Any]) -> str:
    """Render a ``describe`` workflow result as labelled fields plus events."""
    resource = data.get("resource")
    if not isinstance(resource, dict):
        return to_json(data)

    meta = as_map(resource.get("metadata"))
    spec = as_map(resource.get("spec"))
    status = as_map(resource.get("status"))

    lines = [f"{'Name:':<19}{get_string(meta, 'name')}"]
    if get_string(meta, "namespace"):
        lines.append(f"{'Namespace:':<19}{get_string(meta, 'namespace')}")
    labels = as_map(meta.get("labels"))
    if labels:
        lines.append(f"{'Labels:':<19}" + f"\n{'':<19}".join(f"{k}={v}" for k, v in sorted(labels.items())))
    if get_string(meta, "creationTimestamp"):
        lines.append(f"{'Created:':<19}{get_string(meta, 'creationTimestamp')}")

    if isinstance(spec.get("containers"), list) and spec["containers"]:
        if get_string(spec, "nodeName"):
            lines.append(f"{'Node:':<19}{get_string(spec, 'nodeName')}")
        lines.append(f"{'Status:':<19}{pod_effective_status(status)}")
        if get_string(status, "podIP"):
            lines.append(f"{'IP:':<19}{get_string(status, 'podIP')}")
        ready, total = pod_ready_counts(status)
        lines.append(f"{'Ready:':<19}{ready}/{total}")
        lines.append(f"{'Restarts:':<19}{pod_restart_count(status)}")
    else:
        if "replicas" in spec:
            lines.append(f"{'Replicas:':<19}{get_int(spec, 'replicas')} desired")
        if get_string(status, "phase"):
            lines.append(f"{'Status:':<19}{get_string(status, 'phase')}")

    conditions = [as_map(c) for c in status.get("conditions") or []]
    if conditions:
        table = new_table("TYPE", "STATUS", "REASON")
        for condition in conditions:
            table.add_row(
                get_string(condition, "type"),
                get_string(condition, "status"),
                get_string(condition, "reason"),
            )
        lines += ["", "Conditions:", _indent(render_table(table))]

    events = data.get("events")
    if isinstance(events, list) and events:
        lines += ["", "Events:", _indent(render_table(_events(events)))]
    elif isinstance(events, list):
        lines += ["", "Events:  <none>"]

    return "\n".join(lines)


def _indent(text: str) -> str:
    return "\n".join(f"  {line}" for line in text.splitlines())
