"""Visual call flow editor: graph model, canvas interaction and flow documents."""
