"""
Example that serves a small in-memory client bundle. Instead of the bundle
that ships with spagate, any asset source can be given to ``create_app()``,
e.g. one loaded from a directory or generated by some build step.
"""

import spagate


assets = spagate.DictAssetSource(
    {
        "index.html": """<!DOCTYPE html>
<html>
<head><script>window.SERVER_ADDR = "{{ backend_addr }}";</script></head>
<body>
<p>Talking to <span id="addr"></span></p>
<script src="app.js"></script>
</body>
</html>
""",
        "app.js": """
document.getElementById("addr").textContent = window.SERVER_ADDR;
""",
    }
)

config = spagate.ServerConfig(backend_addr="http://localhost:9080")
app = spagate.create_app(config, assets)


if __name__ == "__main__":
    spagate.run(app, "uvicorn", "localhost:8080")
