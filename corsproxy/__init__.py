"""
CORS proxy: forwards requests to the URL given in the query string and adds
CORS headers to whatever comes back.

Example usage with curl:
    curl -i "http://localhost:8000/?https%253A%252F%252Fexample.com%252Fapi"

Preflight requests (OPTIONS) are answered directly by the proxy.
"""
