"""
HTTP surface for the compliance pipeline.

`copy_compliance.web.api` builds the FastAPI app; import it directly so the
package import stays free of app construction.
"""
