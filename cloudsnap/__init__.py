"""CloudSnap: image and video hosting on GitHub, served through jsDelivr."""
