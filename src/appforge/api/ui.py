from __future__ import annotations

from html import escape


def render_homepage(*, app_name: str) -> str:
    title = escape(app_name)
    return f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <style>
    :root {{
      --bg: #eef2f3;
      --panel: #ffffff;
      --ink: #1c2a38;
      --muted: #5d6d79;
      --line: #d5dde2;
      --accent: #146c94;
    }}
    body {{
      margin: 0;
      font-family: system-ui, sans-serif;
      color: var(--ink);
      background: var(--bg);
    }}
    .wrap {{
      max-width: 760px;
      margin: 40px auto;
      padding: 24px 28px;
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 12px;
    }}
    code {{ color: var(--accent); }}
    li {{ margin: 6px 0; }}
    .muted {{ color: var(--muted); }}
  </style>
</head>
<body>
  <div class="wrap">
    <h2>{title}</h2>
    <p class="muted">Generates a single-page app from a brief, publishes it, and reports back.</p>
    <ul>
      <li><code>POST /tasks</code> submit a round (alias <code>POST /api-endpoint</code>)</li>
      <li><code>GET /tasks/{{task_id}}</code> latest successful round for a task</li>
      <li><a href="/health"><code>GET /health</code></a> service health</li>
    </ul>
  </div>
</body>
</html>
"""
