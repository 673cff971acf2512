"""Background maintenance jobs for the Itemize CRM platform."""
