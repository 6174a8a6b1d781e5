"""
Injected signal forwarder.

Installed with page.add_init_script() so it runs before any page script in
every document of the tracked page. It listens for the catalog signals and
history changes on window and forwards them to the host through the exposed
binding. Buffering, filtering and waiting all happen host-side.

Installation is guarded by window._event_tracker, so re-injection into the
same document never adds duplicate listeners.
"""

import json

from models.signals import SignalName

BINDING_NAME = "__signalHarnessBridge"
GLOBAL_HANDLE = "_event_tracker"

_SCRIPT_TEMPLATE = """
(() => {
    const HANDLE = %(handle)s;
    const BINDING = %(binding)s;
    const SIGNALS = %(signals)s;

    if (window[HANDLE]) return;

    const send = (payload) => {
        const bridge = window[BINDING];
        if (typeof bridge !== 'function') return;
        try {
            Promise.resolve(bridge(payload)).catch((e) => console.warn('Signal bridge error ignored', e));
        } catch (e) {
            console.warn('Signal bridge error ignored', e);
        }
    };

    // Detail must survive structured serialization to the host
    const toDetail = (detail) => {
        if (detail === undefined || detail === null) return {};
        if (typeof detail === 'object' && !Array.isArray(detail)) {
            try {
                return JSON.parse(JSON.stringify(detail));
            } catch (e) {
                return {};
            }
        }
        return { value: detail };
    };

    const onSignal = (event) => send({
        channel: 'signal',
        type: event.type,
        detail: toDetail(event.detail),
        href: window.location.href,
    });

    const onNavigation = (event) => send({
        channel: 'navigation',
        kind: event.type,
        href: window.location.href,
    });

    SIGNALS.forEach((name) => window.addEventListener(name, onSignal));
    window.addEventListener('popstate', onNavigation);
    window.addEventListener('hashchange', onNavigation);

    window[HANDLE] = {
        installed: true,
        signals: SIGNALS.slice(),
        destroy: () => {
            SIGNALS.forEach((name) => window.removeEventListener(name, onSignal));
            window.removeEventListener('popstate', onNavigation);
            window.removeEventListener('hashchange', onNavigation);
            delete window[HANDLE];
        },
    };
})();
"""


def build_recorder_script(
    signals: list[str] | None = None,
    binding_name: str = BINDING_NAME,
    handle: str = GLOBAL_HANDLE,
) -> str:
    """
    Render the forwarder script.

    Args:
        signals: Signal names to listen for (default: the full catalog)
        binding_name: Name of the binding exposed with page.expose_binding()
        handle: window property used as the installation guard

    Returns:
        JavaScript source for page.add_init_script()
    """
    return _SCRIPT_TEMPLATE % {
        "handle": json.dumps(handle),
        "binding": json.dumps(binding_name),
        "signals": json.dumps(signals if signals is not None else SignalName.values()),
    }


# Evaluated on close() to detach the page-side listeners
DESTROY_SCRIPT = f"""() => {{
    const handle = window[{json.dumps(GLOBAL_HANDLE)}];
    if (handle && typeof handle.destroy === 'function') handle.destroy();
}}"""
