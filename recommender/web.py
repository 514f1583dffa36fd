"""HTML page rendering for the configuration form."""

from __future__ import annotations

import json
from textwrap import dedent

from .config import Settings
from .manifest import CONFIG_FIELDS


CONFIG_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__APP_NAME__ · Configuration</title>
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #1a1d24;
            --text-muted: #a6a6a6;
            --accent: #8b5cf6;
            background: #0f1115;
            color: #f5f5f5;
        }
        body {
            margin: 0;
            min-height: 100vh;
        }
        main {
            max-width: 560px;
            margin: 0 auto;
            padding: 3rem 1.5rem;
        }
        label {
            display: block;
            margin: 1rem 0 0.35rem;
            color: var(--text-muted);
        }
        input {
            width: 100%;
            box-sizing: border-box;
            padding: 0.7rem;
            border-radius: 8px;
            border: 1px solid #2b2b2b;
            background: var(--surface);
            color: inherit;
        }
        .actions {
            display: flex;
            gap: 0.75rem;
            margin-top: 1.75rem;
        }
        button {
            flex: 1;
            padding: 0.8rem;
            border: 0;
            border-radius: 8px;
            background: var(--accent);
            color: #fff;
            font-weight: 600;
            cursor: pointer;
        }
        #install-link {
            margin-top: 1.25rem;
            word-break: break-all;
            color: var(--text-muted);
        }
    </style>
</head>
<body>
    <main>
        <h1>__APP_NAME__</h1>
        <p>Personalized movie and series picks from your Trakt history, suggested by Google Gemini and matched on TMDB.</p>
        <form id="config-form">
__FIELDS__
            <div class="actions">
                <button type="submit">Install in Stremio</button>
                <button type="button" id="copy-link">Copy link</button>
            </div>
        </form>
        <p id="install-link"></p>
    </main>
    <script>
        (function() {
            const defaults = __DEFAULTS_JSON__;
            const form = document.getElementById('config-form');
            const output = document.getElementById('install-link');

            Object.entries(defaults.values || {}).forEach(([key, value]) => {
                const input = document.getElementById(key);
                if (input && value) {
                    input.value = value;
                }
            });

            function buildManifestUrl() {
                const config = {};
                defaults.fields.forEach((key) => {
                    const value = document.getElementById(key).value.trim();
                    if (value) {
                        config[key] = value;
                    }
                });
                const encoded = encodeURIComponent(JSON.stringify(config));
                return `${window.location.origin}/${encoded}/manifest.json`;
            }

            form.addEventListener('submit', (event) => {
                event.preventDefault();
                const url = buildManifestUrl();
                output.textContent = url;
                window.location.href = url.replace(/^https?:\\/\\//i, 'stremio://');
            });

            document.getElementById('copy-link').addEventListener('click', async () => {
                const url = buildManifestUrl();
                output.textContent = url;
                try {
                    await navigator.clipboard.writeText(url);
                } catch (err) {
                    console.warn('Clipboard unavailable', err);
                }
            });
        })();
    </script>
</body>
</html>
    """
)

FIELD_TEMPLATE = (
    '            <label for="{key}">{title}</label>\n'
    '            <input id="{key}" name="{key}" type="text" autocomplete="off" {required}/>'
)


def render_config_page(settings: Settings, *, values: dict[str, str] | None = None) -> str:
    """Return the full HTML for the `/configure` page."""

    required = "" if settings.has_default_credentials else "required "
    fields = "\n".join(
        FIELD_TEMPLATE.format(key=key, title=title, required=required)
        for key, title in CONFIG_FIELDS
    )
    defaults = {
        "fields": [key for key, _ in CONFIG_FIELDS],
        "values": {key: value for key, value in (values or {}).items() if value},
    }
    defaults_json = json.dumps(defaults).replace("</", "<\\/")

    html = CONFIG_TEMPLATE
    replacements = {
        "__APP_NAME__": settings.app_name,
        "__FIELDS__": fields,
        "__DEFAULTS_JSON__": defaults_json,
    }
    for placeholder, value in replacements.items():
        html = html.replace(placeholder, value)
    return html
