"""Route synthesis pipeline: skeleton generation through assembled route."""
