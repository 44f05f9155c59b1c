from selective_build.cli import main

raise SystemExit(main())
