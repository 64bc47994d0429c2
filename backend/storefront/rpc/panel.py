"""HTML page describing the RPC surface, with a form per procedure."""
import html
import json

from storefront.rpc.router import RPCRouter

PAGE = """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>RPC panel</title>
<style>
body {{ font-family: sans-serif; margin: 2rem; max-width: 60rem; }}
section {{ border: 1px solid #ccc; border-radius: 4px; padding: 1rem; margin-bottom: 1rem; }}
.kind {{ font-size: .8rem; text-transform: uppercase; color: #666; }}
textarea {{ width: 100%; font-family: monospace; }}
pre {{ background: #f6f6f6; padding: .5rem; overflow-x: auto; }}
</style>
</head>
<body>
<h1>RPC panel</h1>
<p>Endpoint: <code>{url}</code></p>
{sections}
<script>
async function invoke(name, kind) {{
  const raw = document.getElementById("input-" + name).value.trim();
  const out = document.getElementById("output-" + name);
  let response;
  if (kind === "query") {{
    const qs = raw ? "?input=" + encodeURIComponent(raw) : "";
    response = await fetch("{url}/" + name + qs);
  }} else {{
    response = await fetch("{url}/" + name, {{
      method: "POST",
      headers: {{"Content-Type": "application/json"}},
      body: raw || "{{}}",
    }});
  }}
  out.textContent = response.status + "\\n" + JSON.stringify(await response.json(), null, 2);
}}
</script>
</body>
</html>
"""

SECTION = """<section>
<span class="kind">{kind}</span>
<h2><code>{name}</code></h2>
<p>{description}</p>
<pre>{schema}</pre>
<textarea id="input-{name}" rows="3">{example}</textarea>
<button onclick="invoke('{name}', '{kind}')">Run</button>
<pre id="output-{name}"></pre>
</section>"""


def example_input(schema: dict | None) -> str:
    """Skeleton JSON object with every required property set to null."""
    if not schema:
        return ""
    required = schema.get("required", [])
    return json.dumps({key: None for key in required})


def render_panel(router: RPCRouter, url: str) -> str:
    sections = []
    for name in sorted(router.procedures):
        proc = router.procedures[name]
        schema = proc.input_schema()
        sections.append(SECTION.format(
            kind=proc.kind,
            name=html.escape(name),
            description=html.escape(proc.description),
            schema=html.escape(json.dumps(schema, indent=2)) if schema else "No input",
            example=html.escape(example_input(schema)),
        ))
    return PAGE.format(url=html.escape(url), sections="\n".join(sections))
