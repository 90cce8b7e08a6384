from adoc_convert.cli import main

raise SystemExit(main())
