"""
Session Metrics Dashboard frontend package.

The Streamlit pages call the FastAPI backend for every listing and export;
``core`` holds the HTTP client and view helpers, ``ui`` the rendering
components, and ``utils`` the Streamlit session-state helpers.
"""
