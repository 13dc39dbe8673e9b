from tar_template.cli import main

raise SystemExit(main())
