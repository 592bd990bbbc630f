import sys
import os

print('Python', sys.version)
# Ensure the project root is on sys.path so 'import dashboard.*' works without an install.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
print('Added to sys.path:', repo_root)
try:
    from dashboard.main import app
    from dashboard.services.cache_service import cache_service, CACHE_TTL
    print('Imports OK:', app.title, dict(CACHE_TTL))
except Exception as e:
    print('Import error', e)
    raise
