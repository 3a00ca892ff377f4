"""HTML test page for checking postMessage delivery from an embedding page."""

from fastapi.responses import HTMLResponse

POSTMESSAGE_TEST_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>PostMessage Test</title>
  <style>
    body { font-family: Arial, sans-serif; padding: 20px; }
    pre { background: #f0f0f0; padding: 10px; border-radius: 5px; overflow: auto; }
    #messages div { margin-bottom: 10px; padding: 10px; border: 1px solid #ddd; border-radius: 5px; }
  </style>
  <script>
    window.addEventListener('message', function (event) {
      var entry = document.createElement('div');
      entry.innerHTML = '<strong>From:</strong> ' + event.origin + '<pre></pre>';
      entry.querySelector('pre').textContent = JSON.stringify(event.data, null, 2);
      document.getElementById('messages').appendChild(entry);
      if (event.source && event.origin) {
        event.source.postMessage({
          type: 'RESPONSE',
          receivedData: event.data,
          from: window.location.origin,
          timestamp: new Date().toISOString()
        }, event.origin);
      }
    });

    window.addEventListener('load', function () {
      if (!document.referrer || window.parent === window) {
        return;
      }
      var parentOrigin = new URL(document.referrer).origin;
      window.parent.postMessage({
        type: 'IFRAME_LOADED',
        from: window.location.origin,
        timestamp: new Date().toISOString(),
        url: window.location.href,
        referrer: document.referrer
      }, parentOrigin);
    });
  </script>
</head>
<body>
  <h1>PostMessage Test Page</h1>
  <p>This page announces itself to its parent and answers every message it receives.</p>
  <h3>Received Messages:</h3>
  <div id="messages"></div>
</body>
</html>
"""


async def handle_postmessage_test_page() -> HTMLResponse:
    return HTMLResponse(content=POSTMESSAGE_TEST_PAGE)
