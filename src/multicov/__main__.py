from multicov.cli import main

raise SystemExit(main())
